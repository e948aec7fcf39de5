"""
Transfer module for deepgram_tts package.

Sends one synthesis request and routes the audio to the player, either
after the whole file is on disk (download mode) or chunk by chunk while
it arrives (stream mode).
"""

import enum
import logging
import os
import sys
import tempfile
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, List, Optional

import httpx

from .errors import DeliveryError, FileSystemError, HttpError, NetworkError, NoPlayerError, PlaybackError
from .model import DeliveryConfig, DeliveryMode, SynthesisRequest, TransferOutcome
from .players import PlaybackSession, PlayerSpec, candidates, locate, open_stream, play_file

logger = logging.getLogger(__name__)


class DeliveryState(enum.Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    DOWNLOADING = "downloading"
    STREAMING = "streaming"
    PLAYING = "playing"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


StateObserver = Callable[[DeliveryState], None]


# ----------------------------
# Cleanup
# ----------------------------
def cleanup(path: Optional[Path], should_delete: bool) -> None:
    """Delete path if asked to and it exists. Never raises."""
    if not should_delete or path is None:
        return
    try:
        path = Path(path)
        if path.exists():
            path.unlink()
            logger.info("Temporary audio file cleaned up")
    except OSError as e:
        logger.debug("Could not remove %s: %s", path, e)


# ----------------------------
# Delivery
# ----------------------------
class Delivery:
    """
    One request/playback cycle.

    Walks IDLE -> REQUESTING -> DOWNLOADING|STREAMING -> PLAYING ->
    CLEANING_UP -> DONE, or ends in FAILED from any step.
    """

    def __init__(
        self,
        request: SynthesisRequest,
        config: DeliveryConfig,
        platform: str = sys.platform,
        client: Optional[httpx.Client] = None,
        on_state: Optional[StateObserver] = None,
    ):
        self.request = request
        self.config = config
        self.platform = platform
        self.client = client
        self.on_state = on_state
        self.state = DeliveryState.IDLE
        self.bytes_received = 0
        self.kept_path: Optional[Path] = None

    def _enter(self, state: DeliveryState) -> None:
        logger.debug("Delivery state %s -> %s", self.state.value, state.value)
        self.state = state
        if self.on_state is not None:
            self.on_state(state)

    @property
    def _quiet(self) -> bool:
        return not self.config.verbose

    def run(self) -> TransferOutcome:
        try:
            preferred = locate(self.platform, self.config.mode)
            if self.config.mode is DeliveryMode.STREAM:
                self._stream(preferred)
            else:
                self._download(candidates(self.platform, self.config.mode))
        except DeliveryError as e:
            self._enter(DeliveryState.FAILED)
            return TransferOutcome(error=e, bytes_received=self.bytes_received, output_path=self.kept_path)

        self._enter(DeliveryState.DONE)
        return TransferOutcome(bytes_received=self.bytes_received, output_path=self.kept_path)

    # ----------------------------
    # HTTP
    # ----------------------------
    @contextmanager
    def _open_response(self) -> Iterator[httpx.Response]:
        self._enter(DeliveryState.REQUESTING)
        client = nullcontext(self.client) if self.client is not None else httpx.Client()
        try:
            with client as http:
                with http.stream(
                    "POST",
                    self.request.url,
                    headers=self.request.headers,
                    json=self.request.payload,
                    timeout=self.config.timeout,
                ) as response:
                    if not response.is_success:
                        raise HttpError(response.status_code, response.reason_phrase)
                    yield response
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise NetworkError(f"Request to speech endpoint failed: {e}") from e

    def _chunks(self, response: httpx.Response) -> Iterator[bytes]:
        for chunk in response.iter_bytes():
            if chunk:
                self.bytes_received += len(chunk)
                yield chunk

    # ----------------------------
    # File sink
    # ----------------------------
    @staticmethod
    def _open_sink(path: Path) -> BinaryIO:
        try:
            return open(path, "wb")
        except OSError as e:
            raise FileSystemError(f"Cannot open output file {path}: {e}") from e

    @staticmethod
    def _write(sink: BinaryIO, chunk: bytes) -> None:
        try:
            sink.write(chunk)
        except OSError as e:
            raise FileSystemError(f"Cannot write output file {sink.name}: {e}") from e

    @staticmethod
    def _close_sink(sink: Optional[BinaryIO], sync: bool = False) -> None:
        if sink is None or sink.closed:
            return
        try:
            sink.flush()
            if sync:
                os.fsync(sink.fileno())
        except OSError as e:
            raise FileSystemError(f"Cannot write output file {sink.name}: {e}") from e
        finally:
            sink.close()

    def _download_target(self):
        """Return (path, delete afterwards)."""
        if self.config.output_path is not None:
            return Path(self.config.output_path), not self.config.retain_file
        fd, name = tempfile.mkstemp(prefix="deepgram_tts_", suffix=".mp3")
        os.close(fd)
        return Path(name), True

    # ----------------------------
    # Download mode
    # ----------------------------
    def _download(self, players: List[PlayerSpec]) -> None:
        path = None
        should_delete = False
        created = False
        try:
            logger.info("Downloading audio...")
            with self._open_response() as response:
                self._enter(DeliveryState.DOWNLOADING)
                path, should_delete = self._download_target()
                # mkstemp already created a temporary target
                created = self.config.output_path is None
                sink = self._open_sink(path)
                created = True
                try:
                    for chunk in self._chunks(response):
                        self._write(sink, chunk)
                finally:
                    # fsync instead of a fixed delay before the player opens the file
                    self._close_sink(sink, sync=True)
            logger.info("Audio download complete (%d bytes)", self.bytes_received)

            self._enter(DeliveryState.PLAYING)
            play_file(path, players, quiet=self._quiet)
        finally:
            if created:
                self._enter(DeliveryState.CLEANING_UP)
                cleanup(path, should_delete)
                if not should_delete and path.exists():
                    self.kept_path = path

    # ----------------------------
    # Stream mode
    # ----------------------------
    def _stream(self, player: PlayerSpec) -> None:
        try:
            session = open_stream(player, quiet=self._quiet)
        except PlaybackError as e:
            raise NoPlayerError(f"Could not create audio player for streaming: {e}") from e

        path = Path(self.config.output_path) if self.config.output_path is not None else None
        sink = None
        started = False
        error = None

        logger.info("Starting real-time audio streaming...")
        try:
            with self._open_response() as response:
                started = True
                self._enter(DeliveryState.STREAMING)
                if path is not None:
                    sink = self._open_sink(path)
                for chunk in self._chunks(response):
                    session.feed(chunk)
                    if sink is not None:
                        self._write(sink, chunk)
            logger.info("Audio stream complete (%d bytes)", self.bytes_received)
        except DeliveryError as e:
            if not started:
                session.abandon()
                raise
            error = e

        # a path that was never opened is not ours to clean up
        self._finish_stream(session, sink, path if sink is not None else None, error)

    def _finish_stream(
        self,
        session: PlaybackSession,
        sink: Optional[BinaryIO],
        path: Optional[Path],
        error: Optional[DeliveryError],
    ) -> None:
        session.close_input()
        try:
            try:
                self._close_sink(sink)
            except FileSystemError as e:
                error = error or e

            self._enter(DeliveryState.PLAYING)
            try:
                session.wait()
            except PlaybackError as e:
                if error is None:
                    raise
                logger.debug("Player also failed after %s: %s", error.kind, e)
        finally:
            if path is not None:
                self._enter(DeliveryState.CLEANING_UP)
                cleanup(path, not self.config.retain_file)
                if self.config.retain_file and path.exists():
                    self.kept_path = path

        if error is not None:
            raise error


def deliver(
    request: SynthesisRequest,
    config: DeliveryConfig,
    *,
    platform: str = sys.platform,
    client: Optional[httpx.Client] = None,
    on_state: Optional[StateObserver] = None,
) -> TransferOutcome:
    """
    Synthesize request.text and play it according to config.

    Args:
        request: What to synthesize
        config: Download or stream, where to save, whether to keep the file
        platform: Platform identifier in sys.platform form
        client: HTTP client to use; a fresh one is created when omitted
        on_state: Called with each DeliveryState as the cycle progresses

    Returns:
        TransferOutcome; classified failures are reported in outcome.error
    """
    return Delivery(request, config, platform=platform, client=client, on_state=on_state).run()
