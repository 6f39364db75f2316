import pytest

from ffq.parsers.ffmpeg_info import FFmpegInfo
from ffq.utils import ffmpeg_locate
from ffq.utils.ffmpeg_locate import FFmpegNotFoundError, candidate_paths, detect_ffmpeg, probe_ffmpeg


def test_candidate_paths_order_and_dedupe():
    paths = candidate_paths("/usr/bin/ffmpeg", platform="linux")
    assert paths == ["/usr/bin/ffmpeg", "ffmpeg", "/usr/local/bin/ffmpeg", "/snap/bin/ffmpeg"]


def test_candidate_paths_windows():
    paths = candidate_paths(platform="win32")
    assert paths[0] == "ffmpeg"
    assert r"C:\ffmpeg\bin\ffmpeg.exe" in paths


def test_probe_missing_binary(tmp_path):
    assert probe_ffmpeg(str(tmp_path / "nope")) is None


def test_detect_uses_first_working_candidate(monkeypatch):
    tried = []

    def fake_probe(path):
        tried.append(path)
        return FFmpegInfo(path, "6.0", "unknown", []) if path == "ffmpeg" else None

    monkeypatch.setattr(ffmpeg_locate, "probe_ffmpeg", fake_probe)
    info = detect_ffmpeg("/custom/ffmpeg")
    assert info.path == "ffmpeg"
    assert tried == ["/custom/ffmpeg", "ffmpeg"]


def test_detect_raises_when_nothing_works(monkeypatch):
    monkeypatch.setattr(ffmpeg_locate, "probe_ffmpeg", lambda path: None)
    with pytest.raises(FFmpegNotFoundError):
        detect_ffmpeg()
