"""
Players module for deepgram_tts package.

Picks the external audio player for the host platform and manages the one
player process a delivery is allowed to run.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .errors import FileSystemError, NoPlayerError, PlaybackError
from .model import DeliveryMode

logger = logging.getLogger(__name__)

STDIN_ARG = "-"


# ----------------------------
# Player candidates
# ----------------------------
@dataclass(frozen=True)
class PlayerSpec:
    """One executable + argument set that can play audio."""

    name: str
    args: Tuple[str, ...] = ()
    accepts_stream: bool = True

    def file_command(self, path: Path) -> List[str]:
        return [self.name, *self.args, str(path)]

    def stream_command(self) -> List[str]:
        if not self.accepts_stream:
            raise ValueError(f"{self.name} cannot read audio from standard input")
        return [self.name, *self.args, STDIN_ARG]


AFPLAY = PlayerSpec("afplay")
MPV = PlayerSpec("mpv", ("--no-video", "--really-quiet"))
FFPLAY = PlayerSpec("ffplay", ("-nodisp", "-autoexit", "-loglevel", "quiet"))
APLAY = PlayerSpec("aplay", accepts_stream=False)

PLATFORM_PLAYERS = {
    "darwin": (AFPLAY,),
    "linux": (MPV, FFPLAY, APLAY),
    "win32": (FFPLAY,),
}


def _platform_key(platform: str) -> Optional[str]:
    if platform.startswith("linux"):
        return "linux"
    if platform in PLATFORM_PLAYERS:
        return platform
    return None


def candidates(platform: str, mode: DeliveryMode) -> List[PlayerSpec]:
    """
    Return the players worth trying on this platform, in preference order.

    Stream mode drops players that can only open a file path. Nothing is
    checked on disk; a missing executable shows up when it is spawned.
    """
    key = _platform_key(platform)
    if key is None:
        return []
    players = PLATFORM_PLAYERS[key]
    if mode is DeliveryMode.STREAM:
        return [p for p in players if p.accepts_stream]
    return list(players)


def locate(platform: str, mode: DeliveryMode) -> PlayerSpec:
    """Return the preferred player, raising NoPlayerError if there is none."""
    found = candidates(platform, mode)
    if not found:
        raise NoPlayerError(f"Unsupported platform for audio playback: {platform}")
    return found[0]


# ----------------------------
# Playback
# ----------------------------
def _stderr(quiet: bool):
    return subprocess.DEVNULL if quiet else None


def _spawn(command: List[str], **kwargs) -> subprocess.Popen:
    try:
        return subprocess.Popen(command, stdout=subprocess.DEVNULL, **kwargs)
    except OSError as e:
        raise PlaybackError.unavailable(f"Failed to start audio player {command[0]}: {e}") from e


class PlaybackSession:
    """
    A running player reading audio from its standard input.

    Writes after the input was closed, or after the player stopped reading,
    are dropped without error.
    """

    def __init__(self, player: PlayerSpec, process: subprocess.Popen):
        self.player = player
        self.process = process
        self.dropped_bytes = 0

    @property
    def input_open(self) -> bool:
        stdin = self.process.stdin
        return stdin is not None and not stdin.closed

    def feed(self, chunk: bytes) -> None:
        if not chunk:
            return
        if not self.input_open:
            self.dropped_bytes += len(chunk)
            return
        try:
            self.process.stdin.write(chunk)
            self.process.stdin.flush()
        except (OSError, ValueError):
            # BrokenPipeError on POSIX, EINVAL on Windows once the reader is gone
            logger.debug("%s stopped reading its input", self.player.name)
            self.dropped_bytes += len(chunk)
            self.close_input()

    def close_input(self) -> None:
        """Signal end of audio; the player keeps running until it drains."""
        if not self.input_open:
            return
        try:
            self.process.stdin.close()
        except OSError as e:
            logger.debug("Closing %s input failed: %s", self.player.name, e)

    def wait(self) -> None:
        """Block until the player exits; non-zero status is a PlaybackError."""
        self.close_input()
        returncode = self.process.wait()
        logger.info("Audio playback finished")
        if returncode != 0:
            raise PlaybackError.exit_code(returncode)

    def abandon(self) -> None:
        """Stop feeding the player and let it exit on its own."""
        self.close_input()
        logger.debug("Abandoned %s (pid %s)", self.player.name, self.process.pid)


def open_stream(player: PlayerSpec, quiet: bool = True) -> PlaybackSession:
    """
    Spawn a player that reads audio from a pipe.

    Only this one player is tried; a spawn failure raises
    PlaybackError(unavailable).
    """
    command = player.stream_command()
    logger.debug("Spawning %s", " ".join(command))
    process = _spawn(command, stdin=subprocess.PIPE, stderr=_stderr(quiet))
    return PlaybackSession(player, process)


def play_file(path: Path, players: Sequence[PlayerSpec], quiet: bool = True) -> PlayerSpec:
    """
    Play a finished audio file and wait for the player to exit.

    Args:
        path: Audio file to play
        players: Candidates in preference order; the first that spawns is used
        quiet: Discard the player's stderr

    Returns:
        The player that was used
    """
    path = Path(path)
    if not path.exists():
        raise FileSystemError(f"Audio file not found: {path}")

    logger.info("Playing audio file: %s", path)
    failures = []
    for player in players:
        try:
            process = _spawn(player.file_command(path), stderr=_stderr(quiet))
        except PlaybackError as e:
            logger.debug("%s", e)
            failures.append(player.name)
            continue

        returncode = process.wait()
        if returncode != 0:
            raise PlaybackError.exit_code(returncode)
        logger.info("Audio playback completed")
        return player

    tried = ", ".join(failures) or "none"
    raise PlaybackError.unavailable(f"No suitable audio player found (tried: {tried})")
