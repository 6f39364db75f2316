# ffq/parsers/ffmpeg_progress.py
import math
import re
from dataclasses import dataclass

# ffmpeg status line: "frame=  240 fps= 48 q=28.0 size=  512kB time=00:00:10.01 bitrate= 419.0kbits/s speed=2.01x"
_TIME = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
_SPEED = re.compile(r"(?<![\w.])(\d+(?:\.\d+)?)x(?!\w)")


@dataclass(frozen=True)
class ProgressSample:
    percent: float | None = None
    elapsed_seconds: float | None = None
    speed: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.elapsed_seconds is None


def _clamp(v: float, lo: float, hi: float) -> float:
    if not math.isfinite(v):
        return lo
    return max(lo, min(hi, v))


def timecode_to_seconds(hours: str, minutes: str, seconds: str) -> float:
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def extract(chunk: str, expected_duration_seconds: float | None = None) -> ProgressSample:
    """Pull elapsed media time, speed and percent out of one diagnostic chunk.

    Chunks may split anywhere and may carry several status lines; the last
    timestamp in the chunk wins. Without a timestamp the result is empty.
    ``percent`` stays ``None`` when the duration is unknown or not positive.
    """
    times = _TIME.findall(chunk or "")
    if not times:
        return ProgressSample()
    elapsed = timecode_to_seconds(*times[-1])

    speed = None
    if speeds := _SPEED.findall(chunk):
        speed = f"{speeds[-1]}x"

    percent = None
    if expected_duration_seconds and expected_duration_seconds > 0:
        percent = _clamp(elapsed / expected_duration_seconds * 100.0, 0.0, 100.0)

    return ProgressSample(percent=percent, elapsed_seconds=elapsed, speed=speed)


def estimate_eta(expected_duration_seconds: float | None, elapsed_seconds: float | None,
                 wall_elapsed_seconds: float | None) -> float | None:
    """Remaining wall seconds, from the media-time rate observed so far."""
    if not expected_duration_seconds or expected_duration_seconds <= 0:
        return None
    if not elapsed_seconds or elapsed_seconds <= 0:
        return None
    if not wall_elapsed_seconds or wall_elapsed_seconds <= 0:
        return None
    rate = elapsed_seconds / wall_elapsed_seconds
    eta = (expected_duration_seconds - elapsed_seconds) / rate
    return max(0.0, eta) if math.isfinite(eta) else None


def tail_lines(output: str | None, limit: int = 20) -> str:
    """Last ``limit`` non-empty lines; ffmpeg's \\r status redraws count as lines."""
    if not output:
        return ""
    lines = [ln.strip() for ln in re.split(r"[\r\n]+", output)]
    lines = [ln for ln in lines if ln]
    if limit > 0:
        lines = lines[-limit:]
    return "\n".join(lines)


def format_eta(eta_seconds: float | None) -> str:
    if not eta_seconds or eta_seconds <= 0:
        return ""
    if eta_seconds < 60:
        return f"{round(eta_seconds)}s"
    if eta_seconds < 3600:
        return f"{round(eta_seconds / 60)}m"
    return f"{round(eta_seconds / 3600)}h"
