# ffq/workers/job_queue.py
import itertools
import logging
import threading
import time
import uuid
from typing import Callable

from PySide6.QtCore import QObject, QThread, Signal

from ..models.job import (
    CANCELED, COMPLETED, FAILED, QUEUED, RUNNING, STATUS_ORDER,
    Job, JobCompleteEvent, JobSpec, ProgressEvent, QueueState, RetryPolicy,
)
from ..parsers.ffmpeg_progress import estimate_eta, extract, tail_lines
from .process_runner import CancelToken, ProcessRunner, RunResult

log = logging.getLogger(__name__)


class _DispatchThread(QThread):
    def __init__(self, loop: Callable[[], None], parent=None):
        super().__init__(parent)
        self._loop = loop

    def run(self):
        self._loop()


class JobQueue(QObject):
    """Ordered transcode jobs executed one at a time against a ProcessRunner.

    Public methods may be called from any thread. Job fields change only
    under ``_lock``, and signals are emitted before it is released, so
    observers see snapshots in the order the changes were made. Slots
    connected directly run under the lock and may call back into the
    queue; connected QObject slots in another thread receive the signals
    through Qt's queued connections, in the same order.
    """

    progress = Signal(object)      # ProgressEvent
    job_complete = Signal(object)  # JobCompleteEvent
    state_changed = Signal(object) # QueueState

    def __init__(self, runner: ProcessRunner, *, error_tail_lines: int = 20,
                 dispatcher: Callable[[Callable[[], None]], None] | None = None,
                 clock: Callable[[], float] = time.time, parent=None):
        super().__init__(parent)
        self.runner = runner
        self.error_tail_lines = error_tail_lines
        self._dispatcher = dispatcher or self._spawn_thread
        self._clock = clock

        self._lock = threading.RLock()
        self._jobs: dict[str, Job] = {}
        self._active_job_id: str | None = None
        self._active_token: CancelToken | None = None
        self._is_running = False
        self._loop_active = False
        self._retry_policy = RetryPolicy()
        self._failed_attempts: list[tuple[str, str]] = []
        self._seq = itertools.count(1)
        self._threads: list[_DispatchThread] = []

    # ---- queries -------------------------------------------------------

    def get_state(self) -> QueueState:
        with self._lock:
            return self._snapshot()

    def get_job(self, job_id: str) -> Job | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job else None

    def get_stats(self) -> dict:
        with self._lock:
            stats = {"total": len(self._jobs)}
            for status in STATUS_ORDER:
                stats[status] = sum(1 for j in self._jobs.values() if j.status == status)
            return stats

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def failed_attempts(self, input_path: str, output_path: str) -> int:
        with self._lock:
            return self._failed_attempts.count((input_path, output_path))

    # ---- commands ------------------------------------------------------

    def add_job(self, spec: JobSpec) -> str:
        job_id = f"job_{int(self._clock() * 1000)}_{uuid.uuid4().hex[:9]}"
        with self._lock:
            self._jobs[job_id] = Job(
                id=job_id,
                input_path=spec.input_path,
                output_path=spec.output_path,
                argv=tuple(spec.argv),
                expected_duration_seconds=spec.expected_duration_seconds,
                created_at=self._clock(),
                queued_seq=next(self._seq),
            )
            log.info("Added job %s: %s -> %s", job_id, spec.input_path, spec.output_path)
            self._publish_locked()
        return job_id

    def remove_job(self, job_id: str) -> bool:
        with self._lock:
            if not (job := self._jobs.get(job_id)):
                return False
            if job.status == RUNNING and self._active_job_id == job_id:
                self._cancel_active_locked()
            del self._jobs[job_id]
            log.info("Removed job %s", job_id)
            self._publish_locked()
        return True

    def clear_queue(self) -> None:
        with self._lock:
            self.stop()
            self._jobs.clear()
            self._failed_attempts.clear()
            log.info("Cleared queue")
            self._publish_locked()

    def start(self, options: RetryPolicy | None = None) -> None:
        with self._lock:
            if self._is_running:
                log.info("Queue is already running")
                return
            self._retry_policy = options or RetryPolicy()
            self._is_running = True
            spawn = not self._loop_active
            self._loop_active = True
            log.info("Starting queue (retry=%s, max=%d)",
                     self._retry_policy.enabled, self._retry_policy.max_retries_per_job)
            self._publish_locked()
        if spawn:
            self._dispatcher(self._dispatch_loop)

    def stop(self) -> None:
        with self._lock:
            changed = self._is_running
            self._is_running = False
            if self._cancel_active_locked():
                changed = True
            if changed:
                log.info("Stopped queue")
                self._publish_locked()

    def retry_job(self, job_id: str) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if not job or job.status != FAILED:
                return False
            job.reset_for_retry()
            job.queued_seq = next(self._seq)
            armed = self._is_running
            log.info("Retrying job %s", job_id)
            self._publish_locked()
        if not armed:
            self.start()
        return True

    def cancel_job(self, job_id: str) -> bool:
        with self._lock:
            if not (job := self._jobs.get(job_id)):
                return False
            if job.status == RUNNING and self._active_job_id == job_id:
                self._cancel_active_locked()
            elif job.status == QUEUED:
                job.status = CANCELED
                job.ended_at = self._clock()
            else:
                return False
            log.info("Canceled job %s", job_id)
            self._publish_locked()
        return True

    def shutdown(self, timeout_ms: int = 3000) -> None:
        self.stop()
        for t in list(self._threads):
            t.wait(timeout_ms)

    # ---- dispatch ------------------------------------------------------

    def _spawn_thread(self, loop: Callable[[], None]) -> None:
        self._threads = [t for t in self._threads if t.isRunning()]
        t = _DispatchThread(loop)
        self._threads.append(t)
        t.start()

    def _dispatch_loop(self) -> None:
        while True:
            with self._lock:
                job = self._next_queued() if self._is_running else None
                if job is None:
                    if self._is_running:
                        log.info("No more jobs to process")
                    self._is_running = False
                    self._loop_active = False
                    self._active_job_id = None
                    self._active_token = None
                    self._publish_locked()
                    return
                token = self._begin_locked(job)
                self._publish_locked()
            self._execute(job, token)

    def _next_queued(self) -> Job | None:
        queued = [j for j in self._jobs.values() if j.status == QUEUED]
        return min(queued, key=lambda j: j.queued_seq) if queued else None

    def _begin_locked(self, job: Job) -> CancelToken:
        job.status = RUNNING
        job.progress_percent = 0.0
        job.speed_label = None
        job.eta_seconds = None
        job.started_at = self._clock()
        job.ended_at = None
        job.error_message = None
        self._active_job_id = job.id
        self._active_token = CancelToken()
        return self._active_token

    def _execute(self, job: Job, token: CancelToken) -> None:
        log.info("Starting job %s: %s -> %s", job.id, job.input_path, job.output_path)
        try:
            result = self.runner.run(job.argv, lambda text: self._on_chunk(job, token, text), token)
        except Exception as e:
            log.exception("Job %s execution error", job.id)
            result = RunResult(exit_code=-1, success=False, error_output=str(e) or type(e).__name__)

        with self._lock:
            if token.cancelled or job.status != RUNNING:
                # cancel_job/remove_job/stop already settled this attempt
                return
            job.ended_at = self._clock()
            self._active_job_id = None
            self._active_token = None
            if result.success:
                job.status = COMPLETED
                job.progress_percent = 100.0
                job.eta_seconds = None
                event = JobCompleteEvent(job.id, True)
                log.info("Job %s completed successfully", job.id)
            else:
                job.status = FAILED
                job.error_message = (tail_lines(result.error_output, self.error_tail_lines)
                                     or f"ffmpeg exited with code {result.exit_code}")
                self._failed_attempts.append((job.input_path, job.output_path))
                if self._should_retry(job):
                    job.reset_for_retry()
                    job.retry_count += 1
                    job.queued_seq = next(self._seq)
                    event = None
                    log.info("Job %s failed, re-queued (retry %d)", job.id, job.retry_count)
                else:
                    event = JobCompleteEvent(job.id, False, job.error_message)
                    log.error("Job %s failed: %s", job.id, event.error)
            self._publish_locked()
            if event is not None:
                self.job_complete.emit(event)

    def _should_retry(self, job: Job) -> bool:
        # Counts every failed attempt for this input/output pair, so two jobs
        # with identical paths share one retry budget.
        policy = self._retry_policy
        if not policy.enabled:
            return False
        return self._failed_attempts.count((job.input_path, job.output_path)) < policy.max_retries_per_job

    def _on_chunk(self, job: Job, token: CancelToken, text: str) -> None:
        sample = extract(text, job.expected_duration_seconds)
        if sample.is_empty:
            return
        with self._lock:
            if token.cancelled or job.status != RUNNING:
                return
            if sample.percent is not None:
                job.progress_percent = max(job.progress_percent, sample.percent)
            if sample.speed:
                job.speed_label = sample.speed
            wall = self._clock() - job.started_at if job.started_at is not None else None
            job.eta_seconds = estimate_eta(job.expected_duration_seconds, sample.elapsed_seconds, wall)
            event = ProgressEvent(
                job_id=job.id,
                percent=job.progress_percent if sample.percent is not None else None,
                speed=job.speed_label,
                eta_seconds=job.eta_seconds,
            )
            log.debug("Job %s progress %s", job.id, event)
            self.progress.emit(event)
            # a progress slot may have canceled the job; its state is already out
            if not token.cancelled:
                self._publish_locked()

    # ---- helpers -------------------------------------------------------

    def _publish_locked(self) -> None:
        self.state_changed.emit(self._snapshot())

    def _cancel_active_locked(self) -> bool:
        if not self._active_job_id:
            return False
        job = self._jobs.get(self._active_job_id)
        token = self._active_token
        self._active_job_id = None
        self._active_token = None
        if token is not None:
            token.cancel()
        if job is None or job.status != RUNNING:
            return False
        job.status = CANCELED
        job.ended_at = self._clock()
        job.eta_seconds = None
        log.info("Canceled running job %s", job.id)
        return True

    def _snapshot(self) -> QueueState:
        jobs = sorted(self._jobs.values(), key=lambda j: STATUS_ORDER[j.status])
        return QueueState(
            jobs=[j.snapshot() for j in jobs],
            active_job_id=self._active_job_id,
            is_running=self._is_running,
        )
