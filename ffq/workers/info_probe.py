import logging
import subprocess
from PySide6.QtCore import QObject, Signal, Slot
from ..parsers.ffmpeg_info import parse_banner_duration, parse_probe_duration

log = logging.getLogger(__name__)


def probe_duration(settings: dict, path: str) -> tuple[float | None, str]:
    """Media duration in seconds via ffprobe, falling back to the ffmpeg banner."""
    err = ""
    cmd = [settings.get("ffprobe_path") or "ffprobe", "-v", "error",
           "-show_entries", "format=duration", "-of", "default=noprint_wrappers=1:nokey=1", path]
    try:
        out = subprocess.check_output(cmd, stderr=subprocess.STDOUT, text=True, timeout=60)
        if (secs := parse_probe_duration(out)) is not None:
            return secs, ""
    except FileNotFoundError:
        err = "ffprobe not found (check Preferences)."
    except subprocess.CalledProcessError as e:
        err = f"ffprobe failed (rc={e.returncode})."
    except subprocess.TimeoutExpired:
        err = "ffprobe timed out."

    # `ffmpeg -i` without an output exits 1 but still prints the input banner
    try:
        res = subprocess.run([settings.get("ffmpeg_path") or "ffmpeg", "-hide_banner", "-i", path],
                             capture_output=True, text=True, timeout=60)
        if (secs := parse_banner_duration(res.stderr)) is not None:
            return secs, ""
    except (OSError, subprocess.TimeoutExpired) as e:
        err = err or str(e)
    return None, err or "duration unknown"


class InfoProbeWorker(QObject):
    probed = Signal(str, object, str)  # input path, duration seconds or None, err

    def __init__(self, settings: dict):
        super().__init__()
        self.settings = settings

    @Slot(str)
    def probe(self, path: str):
        secs, err = probe_duration(self.settings, path)
        if err:
            log.warning("Probe %s: %s", path, err)
        self.probed.emit(path, secs, err)
