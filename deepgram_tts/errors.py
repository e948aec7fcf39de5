"""
Errors module for deepgram_tts package.

Every failure that can end a delivery is one of these classes. The CLI turns
them into a message on stderr and a non-zero exit status.
"""

from typing import Optional


class DeliveryError(Exception):
    """Base class for classified delivery failures."""

    kind = "error"


class ConfigError(DeliveryError):
    """Missing credential or text, reported before any network activity."""

    kind = "config"


class NetworkError(DeliveryError):
    """Connection-level failure talking to the speech endpoint."""

    kind = "network"


class HttpError(DeliveryError):
    """The speech endpoint answered with a non-2xx status."""

    kind = "http"

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}")


class NoPlayerError(DeliveryError):
    """No playback executable can be used on this platform/mode."""

    kind = "no_player"


class PlaybackError(DeliveryError):
    """
    The external player failed.

    reason is UNAVAILABLE when the executable could not be spawned at all and
    EXIT_CODE when it ran but exited non-zero (returncode is then set).
    """

    kind = "playback"

    UNAVAILABLE = "unavailable"
    EXIT_CODE = "exit_code"

    def __init__(self, reason: str, message: str, returncode: Optional[int] = None):
        self.reason = reason
        self.returncode = returncode
        super().__init__(message)

    @classmethod
    def unavailable(cls, message: str) -> "PlaybackError":
        return cls(cls.UNAVAILABLE, message)

    @classmethod
    def exit_code(cls, returncode: int) -> "PlaybackError":
        return cls(cls.EXIT_CODE, f"Audio player exited with code {returncode}", returncode)


class FileSystemError(DeliveryError):
    """The output file could not be opened or written."""

    kind = "filesystem"
