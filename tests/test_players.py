"""Unit tests for deepgram_tts.players."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from deepgram_tts.errors import FileSystemError, NoPlayerError, PlaybackError
from deepgram_tts.model import DeliveryMode
from deepgram_tts.players import candidates, locate, open_stream, play_file


def _names(platform: str, mode: DeliveryMode) -> list:
    return [p.name for p in candidates(platform, mode)]


def test_macos_uses_afplay_for_both_modes() -> None:
    assert _names("darwin", DeliveryMode.DOWNLOAD) == ["afplay"]
    assert locate("darwin", DeliveryMode.STREAM).stream_command() == ["afplay", "-"]


def test_linux_preference_order() -> None:
    assert _names("linux", DeliveryMode.DOWNLOAD) == ["mpv", "ffplay", "aplay"]
    assert _names("linux", DeliveryMode.STREAM) == ["mpv", "ffplay"]


def test_linux_platform_variants_match() -> None:
    assert _names("linux2", DeliveryMode.DOWNLOAD) == _names("linux", DeliveryMode.DOWNLOAD)


def test_linux_players_restricted_to_audio() -> None:
    mpv, ffplay, aplay = candidates("linux", DeliveryMode.DOWNLOAD)
    assert "--no-video" in mpv.file_command(Path("a.mp3"))
    assert ffplay.stream_command()[:3] == ["ffplay", "-nodisp", "-autoexit"]
    assert ffplay.stream_command()[-1] == "-"
    assert aplay.file_command(Path("a.mp3")) == ["aplay", "a.mp3"]
    with pytest.raises(ValueError):
        aplay.stream_command()


def test_windows_uses_ffplay() -> None:
    assert _names("win32", DeliveryMode.DOWNLOAD) == ["ffplay"]
    assert _names("win32", DeliveryMode.STREAM) == ["ffplay"]


@pytest.mark.parametrize("platform", ["sunos5", "aix", "", "cygwin"])
def test_unsupported_platform_has_no_player(platform: str) -> None:
    assert candidates(platform, DeliveryMode.DOWNLOAD) == []
    with pytest.raises(NoPlayerError):
        locate(platform, DeliveryMode.STREAM)


def test_play_file_success_discards_stdout(tmp_path: Path, fake_popen) -> None:
    audio = tmp_path / "a.mp3"
    audio.write_bytes(b"abc")

    used = play_file(audio, candidates("darwin", DeliveryMode.DOWNLOAD))

    assert used.name == "afplay"
    assert fake_popen.process.args == ["afplay", str(audio)]
    assert fake_popen.process.kwargs["stdout"] is subprocess.DEVNULL
    assert fake_popen.process.kwargs["stderr"] is subprocess.DEVNULL
    assert fake_popen.process.wait_calls == 1


def test_play_file_falls_back_to_next_candidate(tmp_path: Path, fake_popen) -> None:
    audio = tmp_path / "a.mp3"
    audio.write_bytes(b"abc")
    fake_popen.missing = {"mpv"}

    used = play_file(audio, candidates("linux", DeliveryMode.DOWNLOAD))

    assert used.name == "ffplay"
    assert [a[0] for a in fake_popen.attempts] == ["mpv", "ffplay"]


def test_play_file_stops_at_first_spawned_player_even_if_it_fails(tmp_path: Path, fake_popen) -> None:
    audio = tmp_path / "a.mp3"
    audio.write_bytes(b"abc")
    fake_popen.returncode = 2

    with pytest.raises(PlaybackError) as excinfo:
        play_file(audio, candidates("linux", DeliveryMode.DOWNLOAD))

    assert excinfo.value.reason == PlaybackError.EXIT_CODE
    assert excinfo.value.returncode == 2
    assert len(fake_popen.attempts) == 1


def test_play_file_no_player_installed(tmp_path: Path, fake_popen) -> None:
    audio = tmp_path / "a.mp3"
    audio.write_bytes(b"abc")
    fake_popen.missing = {"mpv", "ffplay", "aplay"}

    with pytest.raises(PlaybackError) as excinfo:
        play_file(audio, candidates("linux", DeliveryMode.DOWNLOAD))

    assert excinfo.value.reason == PlaybackError.UNAVAILABLE
    assert "mpv, ffplay, aplay" in str(excinfo.value)


def test_play_file_missing_file(tmp_path: Path, fake_popen) -> None:
    with pytest.raises(FileSystemError):
        play_file(tmp_path / "nope.mp3", candidates("darwin", DeliveryMode.DOWNLOAD))
    assert fake_popen.attempts == []


def test_play_file_verbose_keeps_stderr(tmp_path: Path, fake_popen) -> None:
    audio = tmp_path / "a.mp3"
    audio.write_bytes(b"abc")

    play_file(audio, candidates("win32", DeliveryMode.DOWNLOAD), quiet=False)

    assert fake_popen.process.kwargs["stderr"] is None


def test_open_stream_pipes_stdin(fake_popen) -> None:
    session = open_stream(locate("linux", DeliveryMode.STREAM))

    assert fake_popen.process.args == ["mpv", "--no-video", "--really-quiet", "-"]
    assert fake_popen.process.kwargs["stdin"] is subprocess.PIPE
    assert fake_popen.process.kwargs["stdout"] is subprocess.DEVNULL
    assert session.input_open


def test_open_stream_spawn_failure_is_unavailable(fake_popen) -> None:
    fake_popen.missing = {"mpv"}

    with pytest.raises(PlaybackError) as excinfo:
        open_stream(locate("linux", DeliveryMode.STREAM))

    assert excinfo.value.reason == PlaybackError.UNAVAILABLE
    # no second candidate is tried for a stream
    assert len(fake_popen.attempts) == 1


def test_feed_after_close_is_dropped(fake_popen) -> None:
    session = open_stream(locate("darwin", DeliveryMode.STREAM))
    session.feed(b"one")
    session.close_input()
    session.feed(b"two")

    assert fake_popen.process.stdin.data == b"one"
    assert session.dropped_bytes == 3


def test_feed_on_broken_pipe_is_dropped(fake_popen) -> None:
    fake_popen.broken_after = 1
    session = open_stream(locate("darwin", DeliveryMode.STREAM))

    session.feed(b"one")
    session.feed(b"two")
    session.feed(b"three")

    assert fake_popen.process.stdin.data == b"one"
    assert not session.input_open
    assert session.dropped_bytes == len(b"twothree")


def test_wait_maps_exit_status(fake_popen) -> None:
    fake_popen.returncode = 1
    session = open_stream(locate("darwin", DeliveryMode.STREAM))

    with pytest.raises(PlaybackError) as excinfo:
        session.wait()

    assert excinfo.value.returncode == 1
    assert fake_popen.process.stdin.closed


def test_abandon_closes_input_without_waiting(fake_popen) -> None:
    session = open_stream(locate("darwin", DeliveryMode.STREAM))

    session.abandon()

    assert fake_popen.process.stdin.closed
    assert fake_popen.process.wait_calls == 0
