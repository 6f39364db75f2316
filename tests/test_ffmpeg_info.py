import pytest

from ffq.parsers.ffmpeg_info import (
    duration_to_seconds, parse_banner_duration, parse_ffmpeg_version, parse_probe_duration,
)

VERSION_OUT = """ffmpeg version 6.1.1-3ubuntu5 Copyright (c) 2000-2023 the FFmpeg developers
built with gcc 13 (Ubuntu 13.2.0-23ubuntu3)
configuration: --prefix=/usr --enable-gpl --enable-libx264
libavutil      58. 29.100 / 58. 29.100
"""


def test_parse_ffmpeg_version():
    info = parse_ffmpeg_version(VERSION_OUT, "/usr/bin/ffmpeg")
    assert info.path == "/usr/bin/ffmpeg"
    assert info.version == "6.1.1-3ubuntu5"
    assert info.build_date == "unknown"
    assert info.configuration == ["--prefix=/usr", "--enable-gpl", "--enable-libx264"]


def test_parse_ffmpeg_version_built_on():
    out = "ffmpeg version 4.4 Copyright (c) 2000-2021\nbuilt on Jan  1 2022 10:00:00, gcc 9\n"
    info = parse_ffmpeg_version(out, "ffmpeg")
    assert info.build_date == "Jan  1 2022 10:00:00"
    assert info.configuration == []


def test_parse_ffmpeg_version_garbage():
    info = parse_ffmpeg_version("", "x")
    assert (info.version, info.build_date, info.configuration) == ("unknown", "unknown", [])


@pytest.mark.parametrize("out,expected", [
    ("125.480000\n", 125.48),
    ("duration=60.5\n", 60.5),
    ("N/A\n", None),
    ("0.000000\n", None),
    ("", None),
])
def test_parse_probe_duration(out, expected):
    assert parse_probe_duration(out) == expected


def test_parse_banner_duration():
    banner = "Input #0, matroska,webm, from 'a.mkv':\n  Duration: 01:02:03.50, start: 0.000000, bitrate: 512 kb/s\n"
    assert parse_banner_duration(banner) == pytest.approx(3723.5)
    assert parse_banner_duration("  Duration: N/A, start: 0") is None


def test_duration_to_seconds():
    assert duration_to_seconds("1:00:00") == 3600
    assert duration_to_seconds("02:30") == 150
    assert duration_to_seconds("x:y") is None
    assert duration_to_seconds(None) is None
