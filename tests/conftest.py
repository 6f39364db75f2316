import os
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QCoreApplication

from ffq.workers.job_queue import JobQueue
from ffq.workers.process_runner import RunResult


@pytest.fixture(scope="session", autouse=True)
def qt_core_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, secs: float) -> None:
        self.now += secs


@dataclass
class Attempt:
    """One scripted process run. Callables in ``chunks`` are invoked instead of fed."""
    chunks: list = field(default_factory=list)
    exit_code: int = 0
    stderr: str = ""
    raises: Exception | None = None
    during: Callable[[], None] | None = None


class FakeRunner:
    def __init__(self, *attempts: Attempt, default: Attempt | None = None):
        self.attempts = deque(attempts)
        self.default = default or Attempt()
        self.calls: list[tuple[str, ...]] = []
        self.killed: list[tuple[str, ...]] = []

    def run(self, argv, on_chunk, token):
        argv = tuple(argv)
        self.calls.append(argv)
        token.add_callback(lambda: self.killed.append(argv))
        attempt = self.attempts.popleft() if self.attempts else self.default
        if attempt.raises is not None:
            raise attempt.raises
        for chunk in attempt.chunks:
            if callable(chunk):
                chunk()
            else:
                on_chunk(chunk)
        if attempt.during:
            attempt.during()
        if token.cancelled:
            return RunResult(exit_code=255, success=False, error_output="Exiting normally, received signal 15.")
        return RunResult(exit_code=attempt.exit_code, success=attempt.exit_code == 0,
                         error_output=attempt.stderr)


class Recorder:
    """Collects queue signals in delivery order."""

    def __init__(self, queue: JobQueue):
        self.log: list[tuple[str, object]] = []
        queue.state_changed.connect(lambda s: self.log.append(("state", s)))
        queue.progress.connect(lambda e: self.log.append(("progress", e)))
        queue.job_complete.connect(lambda e: self.log.append(("complete", e)))

    def of(self, kind: str) -> list:
        return [payload for k, payload in self.log if k == kind]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_queue(clock):
    """Queue whose dispatch loop runs inline in the calling thread."""
    def _make(runner, **kw):
        spawns = []

        def dispatcher(loop):
            spawns.append(loop)
            loop()

        q = JobQueue(runner, dispatcher=dispatcher, clock=clock, **kw)
        q.spawns = spawns
        return q, Recorder(q)
    return _make
