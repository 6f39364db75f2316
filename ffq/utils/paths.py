import re
import shlex
from pathlib import Path

MEDIA_EXTS = {
    ".mp4", ".m4v", ".mkv", ".mov", ".avi", ".wmv", ".flv", ".webm", ".mpg", ".mpeg", ".ts", ".mts",
    ".mp3", ".wav", ".flac", ".aac", ".m4a", ".ogg", ".oga", ".opus",
}

def safe_name(s: str) -> str:
    s = re.sub(r'[\\/:*?"<>|]+', " ", s).strip()
    s = re.sub(r"\s+", " ", s)
    return s or "Unnamed"

def unique_file(path: Path, taken: set[str] | None = None) -> Path:
    """``path`` or ``name_001.ext``, ``name_002.ext``… not on disk and not in ``taken``."""
    taken = taken or set()
    if not path.exists() and str(path) not in taken:
        return path
    n = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{n:03d}{path.suffix}")
        if not candidate.exists() and str(candidate) not in taken:
            return candidate
        n += 1

def is_media(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in MEDIA_EXTS

def find_media_files(path: Path, max_depth: int = 5) -> list[Path]:
    """Media files under a dropped path (the path itself if it is a file)."""
    if path.is_file():
        return [path] if is_media(path) else []
    found: list[Path] = []

    def _walk(current: Path, depth: int) -> None:
        if depth > max_depth:
            return
        try:
            for item in sorted(current.iterdir()):
                if item.is_dir():
                    _walk(item, depth + 1)
                elif is_media(item):
                    found.append(item)
        except (PermissionError, OSError):
            # Skip directories we can't access
            pass

    if path.is_dir():
        _walk(path, 0)
    return found

def output_path_for(input_path: Path, settings: dict, taken: set[str] | None = None) -> Path:
    ext = settings.get("output_extension") or ".mp4"
    if not ext.startswith("."):
        ext = "." + ext
    root = Path(settings["output_root"])
    out = root / f"{safe_name(input_path.stem)}{ext}"
    if out.resolve() == input_path.resolve():
        out = root / f"{safe_name(input_path.stem)}_out{ext}"
    return unique_file(out, taken)

def build_argv(input_path: Path, output_path: Path, settings: dict) -> list[str]:
    """Argument vector for ffmpeg (binary excluded; the runner prepends it)."""
    argv = ["-hide_banner"]
    if settings.get("overwrite", True):
        argv.append("-y")
    argv += ["-i", str(input_path)]
    if extra := (settings.get("extra_args") or "").strip():
        argv += shlex.split(extra)
    argv.append(str(output_path))
    return argv
