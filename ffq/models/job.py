# ffq/models/job.py
import copy
from dataclasses import dataclass, field
from typing import Literal, Optional

JobStatus = Literal["queued", "running", "completed", "failed", "canceled"]

QUEUED: JobStatus = "queued"
RUNNING: JobStatus = "running"
COMPLETED: JobStatus = "completed"
FAILED: JobStatus = "failed"
CANCELED: JobStatus = "canceled"

# Display order for QueueState.jobs
STATUS_ORDER = {RUNNING: 0, QUEUED: 1, COMPLETED: 2, FAILED: 3, CANCELED: 4}


@dataclass(frozen=True)
class JobSpec:
    """What a caller hands to JobQueue.add_job."""
    input_path: str
    output_path: str
    argv: tuple[str, ...]
    expected_duration_seconds: float | None = None


@dataclass
class Job:
    id: str
    input_path: str
    output_path: str
    argv: tuple[str, ...]
    expected_duration_seconds: float | None = None
    status: JobStatus = QUEUED
    progress_percent: float = 0.0
    speed_label: str | None = None
    eta_seconds: float | None = None
    created_at: float | None = None
    started_at: float | None = None
    ended_at: float | None = None
    error_message: str | None = None
    retry_count: int = 0
    queued_seq: int = field(default=0, repr=False, compare=False)

    def snapshot(self) -> "Job":
        return copy.copy(self)

    def reset_for_retry(self) -> None:
        self.status = QUEUED
        self.progress_percent = 0.0
        self.speed_label = None
        self.eta_seconds = None
        self.started_at = None
        self.ended_at = None
        self.error_message = None


@dataclass(frozen=True)
class RetryPolicy:
    enabled: bool = False
    max_retries_per_job: int = 2

    @classmethod
    def from_settings(cls, settings: dict) -> "RetryPolicy":
        return cls(
            enabled=bool(settings.get("retry_on_fail", False)),
            max_retries_per_job=max(0, int(settings.get("max_retries_per_job", 2))),
        )


@dataclass(frozen=True)
class QueueState:
    jobs: list[Job]
    active_job_id: Optional[str]
    is_running: bool

    def job(self, job_id: str) -> Job | None:
        return next((j for j in self.jobs if j.id == job_id), None)


@dataclass(frozen=True)
class ProgressEvent:
    job_id: str
    percent: float | None
    speed: str | None = None
    eta_seconds: float | None = None


@dataclass(frozen=True)
class JobCompleteEvent:
    job_id: str
    success: bool
    error: str | None = None
