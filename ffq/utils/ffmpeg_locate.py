# ffq/utils/ffmpeg_locate.py
import logging
import subprocess
import sys

from ..parsers.ffmpeg_info import FFmpegInfo, parse_ffmpeg_version

log = logging.getLogger(__name__)

_PLATFORM_PATHS = {
    "win32": [
        r"C:\ffmpeg\bin\ffmpeg.exe",
        r"C:\Program Files\ffmpeg\bin\ffmpeg.exe",
        r"C:\Program Files (x86)\ffmpeg\bin\ffmpeg.exe",
    ],
    "darwin": ["/usr/local/bin/ffmpeg", "/opt/homebrew/bin/ffmpeg", "/usr/bin/ffmpeg"],
    "linux": ["/usr/bin/ffmpeg", "/usr/local/bin/ffmpeg", "/snap/bin/ffmpeg"],
}


class FFmpegNotFoundError(RuntimeError):
    pass


def candidate_paths(custom: str | None = None, platform: str | None = None) -> list[str]:
    paths = [custom] if custom else []
    paths.append("ffmpeg")
    paths += _PLATFORM_PATHS.get(platform or sys.platform, [])
    seen = set()
    return [p for p in paths if not (p in seen or seen.add(p))]


def probe_ffmpeg(path: str) -> FFmpegInfo | None:
    try:
        out = subprocess.check_output([path, "-version"], stderr=subprocess.STDOUT, text=True, timeout=5)
    except (OSError, subprocess.SubprocessError):
        return None
    return parse_ffmpeg_version(out, path)


def detect_ffmpeg(custom: str | None = None) -> FFmpegInfo:
    for path in candidate_paths(custom):
        if info := probe_ffmpeg(path):
            log.info("Using ffmpeg %s at %s", info.version, path)
            return info
        log.debug("No usable ffmpeg at %s", path)
    raise FFmpegNotFoundError("FFmpeg not found. Please install FFmpeg or specify a custom path.")
