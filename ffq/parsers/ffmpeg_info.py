# ffq/parsers/ffmpeg_info.py
import re
from typing import NamedTuple


class FFmpegInfo(NamedTuple):
    path: str
    version: str
    build_date: str
    configuration: list[str]


def parse_ffmpeg_version(output: str, path: str) -> FFmpegInfo:
    lines = output.splitlines()
    first = lines[0] if lines else ""
    build_line = next((ln for ln in lines if "built on" in ln), "")
    config_line = next((ln for ln in lines if "configuration:" in ln), "")

    m_ver = re.search(r"(?:ffmpeg|ffprobe) version (\S+)", first)
    m_build = re.search(r"built on ([^,]+)", build_line)
    m_conf = re.search(r"configuration: (.+)", config_line)

    return FFmpegInfo(
        path=path,
        version=m_ver.group(1) if m_ver else "unknown",
        build_date=m_build.group(1).strip() if m_build else "unknown",
        configuration=m_conf.group(1).split() if m_conf else [],
    )


def parse_probe_duration(output: str) -> float | None:
    """ffprobe ``-show_entries format=duration`` output → seconds, or None."""
    for line in (output or "").splitlines():
        line = line.strip()
        if line.startswith("duration="):
            line = line.split("=", 1)[1]
        try:
            secs = float(line)
        except ValueError:
            continue
        if secs > 0:
            return secs
    return None


def duration_to_seconds(d: str | None):
    if not d: return None
    parts = d.split(":")
    try:
        if len(parts) == 3:
            h, m = int(parts[0]), int(parts[1]); return h*3600 + m*60 + float(parts[2])
        if len(parts) == 2:
            return int(parts[0])*60 + float(parts[1])
    except ValueError:
        return None
    return None


def parse_banner_duration(output: str) -> float | None:
    """``Duration: 00:01:02.50, start: ...`` from an ``ffmpeg -i`` banner."""
    m = re.search(r"Duration:\s*(\d+:\d{2}:\d{2}(?:\.\d+)?)", output or "")
    secs = duration_to_seconds(m.group(1)) if m else None
    return secs if secs and secs > 0 else None
