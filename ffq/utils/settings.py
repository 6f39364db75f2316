# ffq/utils/settings.py
import json
import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)


def _settings_file() -> Path:
    if env := os.environ.get("FFQ_SETTINGS_FILE"):
        return Path(env)
    return Path.home() / ".ffq_settings.json"

APP_SETTINGS_FILE = _settings_file()

DEFAULT_SETTINGS = {
    "output_root": str(Path.home() / "FFQ_Out"),
    "ffmpeg_path": "ffmpeg",
    "ffprobe_path": "ffprobe",
    "output_extension": ".mp4",
    "extra_args": "",
    "overwrite": True,                 # pass -y so reruns replace partial outputs
    "probe_duration": True,            # ffprobe each input before queueing (needed for %)

    # Queue behaviour
    "retry_on_fail": False,
    "max_retries_per_job": 2,
    "error_tail_lines": 20,            # lines of ffmpeg stderr kept as the job error

    "log_level": "INFO",
    # layout persistence:
    # "col_widths": [...],
    # "center_split_sizes": [...],
    # "v_split_sizes": [...],
}

def load_settings(path: Path | None = None) -> dict:
    p = path or APP_SETTINGS_FILE
    if p.exists():
        try:
            data = json.loads(p.read_text())
            return {**DEFAULT_SETTINGS, **data}
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable settings file %s: %s", p, e)
    # First run or broken file → write defaults so the file exists
    save_settings(DEFAULT_SETTINGS, p)
    return DEFAULT_SETTINGS.copy()

def save_settings(data: dict, path: Path | None = None) -> None:
    p = path or APP_SETTINGS_FILE
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(data, indent=2))
    except OSError as e:
        log.error("Could not save settings to %s: %s", p, e)
