# ffq/workers/process_runner.py
import codecs
import logging
import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

log = logging.getLogger(__name__)

# Keep the tail of stderr only; long encodes print a status line per frame batch.
_ERROR_BUFFER_CHARS = 64 * 1024


@dataclass(frozen=True)
class RunResult:
    exit_code: int
    success: bool
    error_output: str | None = None


class CancelToken:
    """One-shot cancellation handle shared between the queue and a runner.

    Callbacks registered after cancel() fire immediately, so a runner that
    registers its kill hook right after spawning cannot miss a cancel.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            try:
                cb()
            except Exception:
                log.exception("cancel callback failed")

    def add_callback(self, cb: Callable[[], None]) -> None:
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(cb)
                return
        cb()


class ProcessRunner(Protocol):
    def run(self, argv: Sequence[str], on_chunk: Callable[[str], None],
            token: CancelToken) -> RunResult: ...


class FFmpegRunner:
    """Runs the ffmpeg binary with a job's argv and streams stderr to ``on_chunk``."""

    def __init__(self, settings: dict, kill_grace_seconds: float = 5.0):
        self.settings = settings
        self.kill_grace_seconds = kill_grace_seconds

    @property
    def binary(self) -> str:
        return self.settings.get("ffmpeg_path") or "ffmpeg"

    def run(self, argv, on_chunk, token):
        if token.cancelled:
            return RunResult(exit_code=-1, success=False, error_output="Canceled before start")

        cmd = [self.binary, *argv]
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError:
            return RunResult(exit_code=-1, success=False,
                             error_output=f"{self.binary} not found. Check Preferences.")
        except OSError as e:
            return RunResult(exit_code=-1, success=False, error_output=f"Failed to start {self.binary}: {e}")

        log.debug("spawned pid %s: %s", proc.pid, cmd)
        token.add_callback(lambda: self._terminate(proc))

        tail: deque[str] = deque()
        tail_len = 0
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        with proc:
            while chunk := proc.stderr.read1(4096):
                text = decoder.decode(chunk)
                if not text:
                    continue
                tail.append(text)
                tail_len += len(text)
                while tail_len > _ERROR_BUFFER_CHARS and len(tail) > 1:
                    tail_len -= len(tail.popleft())
                try:
                    on_chunk(text)
                except Exception:
                    log.exception("progress callback failed")
            if rest := decoder.decode(b"", final=True):
                tail.append(rest)
            code = proc.wait()

        return RunResult(exit_code=code, success=code == 0 and not token.cancelled,
                         error_output="".join(tail))

    def _terminate(self, proc: subprocess.Popen) -> None:
        if proc.poll() is not None:
            return
        log.info("terminating pid %s", proc.pid)
        try:
            proc.terminate()
        except OSError:
            return
        timer = threading.Timer(self.kill_grace_seconds, self._force_kill, args=(proc,))
        timer.daemon = True
        timer.start()

    @staticmethod
    def _force_kill(proc: subprocess.Popen) -> None:
        if proc.poll() is None:
            log.warning("pid %s ignored terminate, killing", proc.pid)
            try:
                proc.kill()
            except OSError:
                pass
