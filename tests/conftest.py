import pytest

from debug_console.client import ApiError
from debug_console.models import BatchResponse


class ManualScheduler:
    """Virtual-time scheduler: jobs only run when the test advances the clock."""

    def __init__(self):
        self.now = 0.0
        self.jobs = []

    def every(self, seconds, func):
        job = _ManualJob(self, seconds, func, self.now + seconds)
        self.jobs.append(job)
        return job

    @property
    def active_jobs(self):
        return [job for job in self.jobs if not job.cancelled]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [j for j in self.active_jobs if j.next_run <= target]
            if not due:
                break
            job = min(due, key=lambda j: j.next_run)
            self.now = job.next_run
            job.next_run += job.interval
            job.func()
        self.now = target


class _ManualJob:
    def __init__(self, scheduler, interval, func, next_run):
        self.scheduler = scheduler
        self.interval = interval
        self.func = func
        self.next_run = next_run
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLogApi:
    """Scripted fetch_logs: responses are queued per since_id call order."""

    def __init__(self):
        self.calls = []
        self.responses = []

    def queue(self, logs, max_id):
        self.responses.append(BatchResponse(logs=list(logs), max_id=max_id))

    def queue_error(self, message="Network down"):
        self.responses.append(ApiError(message))

    def __call__(self, subject_id, since_id):
        self.calls.append((subject_id, since_id))
        if not self.responses:
            return BatchResponse(logs=[], max_id=since_id)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_log(msg="test message", category="[API]", level="info",
             debug_level="default", ts="2025-01-15T10:30:00Z", data=None):
    entry = {
        "ts": ts,
        "level": level,
        "category": category,
        "msg": msg,
        "debug_level": debug_level,
    }
    if data is not None:
        entry["data"] = data
    return entry


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def api():
    return FakeLogApi()
