"""Shared fixtures: a fake player process and a mocked speak endpoint."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, List, Optional

import httpx
import pytest

from deepgram_tts import players


class FakeStdin:
    def __init__(self, broken_after: Optional[int] = None, error: Optional[OSError] = None) -> None:
        self.chunks: List[bytes] = []
        self.closed = False
        self.broken_after = broken_after
        self.error = error

    def write(self, chunk: bytes) -> int:
        if self.closed:
            raise ValueError("write to closed file")
        if self.broken_after is not None and len(self.chunks) >= self.broken_after:
            raise self.error or BrokenPipeError(32, "Broken pipe")
        self.chunks.append(bytes(chunk))
        return len(chunk)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)


class FakeProcess:
    def __init__(self, args, kwargs, returncode: int, broken_after: Optional[int], stdin_error: Optional[OSError]) -> None:
        self.args = list(args)
        self.kwargs = kwargs
        self.pid = 4242
        self.returncode = None
        self._exit_code = returncode
        self.wait_calls = 0
        self.stdin = FakeStdin(broken_after, stdin_error) if kwargs.get("stdin") is not None else None
        self.file_content: Optional[bytes] = None

    def wait(self) -> int:
        self.wait_calls += 1
        self.returncode = self._exit_code
        return self._exit_code


class FakePopen:
    """Stands in for subprocess.Popen inside deepgram_tts.players."""

    def __init__(self) -> None:
        self.missing: set = set()
        self.returncode = 0
        self.broken_after: Optional[int] = None
        self.stdin_error: Optional[OSError] = None
        self.attempts: List[List[str]] = []
        self.processes: List[FakeProcess] = []

    def __call__(self, args, **kwargs) -> FakeProcess:
        self.attempts.append(list(args))
        if args[0] in self.missing:
            raise FileNotFoundError(2, "No such file or directory", args[0])
        process = FakeProcess(args, kwargs, self.returncode, self.broken_after, self.stdin_error)
        if kwargs.get("stdin") is None:
            target = Path(args[-1])
            # what the player would read when it opens the file
            process.file_content = target.read_bytes() if target.exists() else None
        self.processes.append(process)
        return process

    @property
    def process(self) -> FakeProcess:
        assert len(self.processes) == 1, f"expected one player, got {len(self.processes)}"
        return self.processes[0]


@pytest.fixture
def fake_popen(monkeypatch: pytest.MonkeyPatch) -> FakePopen:
    fake = FakePopen()
    monkeypatch.setattr(players.subprocess, "Popen", fake)
    return fake


class SpeakServer:
    """Records requests and answers them through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.status = 200
        self.chunks: Iterable[bytes] = [b""]
        self.headers: dict = {}
        self.error: Optional[Callable[[httpx.Request], Exception]] = None

    def respond(self, status: int = 200, chunks: Iterable[bytes] = (b"",)) -> None:
        self.status = status
        self.chunks = list(chunks)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(request)
        chunks = self.chunks

        def body():
            for chunk in chunks:
                if isinstance(chunk, Exception):
                    raise chunk
                yield chunk

        return httpx.Response(self.status, headers=self.headers, content=body())

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def speak_server() -> SpeakServer:
    return SpeakServer()


@pytest.fixture
def audio_bytes() -> bytes:
    return bytes((i * 37 + 11) % 256 for i in range(12345))
