"""Live-tail controller — initial full fetch, then polling for newer batches."""

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from debug_console.client import ApiError
from debug_console.models import BatchResponse, LogRecord, parse_record
from debug_console.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 3.0

FetchLogs = Callable[[str, int], BatchResponse]


@dataclass(frozen=True)
class TailState:
    subject_id: str | None = None
    records: tuple[LogRecord, ...] = ()
    last_seen_id: int = 0
    following: bool = False
    error: str | None = None
    epoch: int = 0


class LiveTailController:
    """Idle/Following state machine over one subject's log stream.

    Records only grow by append for the lifetime of one subject selection.
    Every selection (and close) bumps the selection epoch; a response that
    comes back under an older epoch is dropped. The server is trusted to
    return only ids above since_id, so no de-duplication happens here.
    """

    def __init__(
        self,
        fetch_logs: FetchLogs,
        scheduler: Scheduler,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_append: Callable[[list[LogRecord]], None] | None = None,
    ):
        self._fetch = fetch_logs
        self._scheduler = scheduler
        self._poll_interval = poll_interval
        self._on_append = on_append
        self._lock = threading.Lock()
        self._timer: TimerHandle | None = None
        self._subject_id: str | None = None
        self._records: list[LogRecord] = []
        self._last_seen_id = 0
        self._following = False
        self._error: str | None = None
        self._epoch = 0
        self._loading = False
        self._scroll_requested = False

    @property
    def subject_id(self) -> str | None:
        return self._subject_id

    @property
    def records(self) -> list[LogRecord]:
        with self._lock:
            return list(self._records)

    @property
    def last_seen_id(self) -> int:
        return self._last_seen_id

    @property
    def following(self) -> bool:
        return self._following

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def state(self) -> TailState:
        with self._lock:
            return TailState(
                subject_id=self._subject_id,
                records=tuple(self._records),
                last_seen_id=self._last_seen_id,
                following=self._following,
                error=self._error,
                epoch=self._epoch,
            )

    def select_subject(self, subject_id: str, debug_enabled: bool = True) -> bool:
        """Discard prior state and load the subject's full history.

        Enters Following when the subject has debug mode on. Returns False
        when the fetch failed or its batch could not be read; the error is kept on the controller and the
        selection is not retried.
        """
        with self._lock:
            self._cancel_timer()
            self._epoch += 1
            epoch = self._epoch
            self._subject_id = subject_id
            self._records = []
            self._last_seen_id = 0
            self._following = False
            self._error = None
            self._scroll_requested = False
            self._loading = True

        logger.info("Loading logs for %s", subject_id)
        try:
            batch = self._fetch(subject_id, 0)
            records = [parse_record(entry) for entry in batch.logs]
            max_id = int(batch.max_id or 0)
        except Exception as e:
            if isinstance(e, ApiError):
                logger.error("Initial log fetch for %s failed: %s", subject_id, e)
            else:
                logger.exception("Initial log load for %s failed", subject_id)
            with self._lock:
                if epoch == self._epoch:
                    self._error = str(e) or type(e).__name__
                    self._loading = False
            return False

        with self._lock:
            if epoch != self._epoch:
                logger.debug("Dropping stale initial batch for %s", subject_id)
                return False
            self._records = records
            self._last_seen_id = max_id
            self._loading = False
            if debug_enabled:
                self._start_following()

        logger.info(
            "Loaded %d log(s) for %s (max_id=%d, following=%s)",
            len(records), subject_id, self._last_seen_id, debug_enabled,
        )
        return True

    def poll(self) -> int:
        """One tick: fetch records newer than last_seen_id and append them.

        Failures are logged and swallowed; the next tick simply retries.
        Returns the number of appended records.
        """
        with self._lock:
            if self._subject_id is None or self._loading:
                return 0
            epoch = self._epoch
            subject_id = self._subject_id
            since_id = self._last_seen_id

        try:
            batch = self._fetch(subject_id, since_id)
            new_records = [parse_record(entry) for entry in batch.logs]
            max_id = int(batch.max_id or 0)
        except Exception as e:
            logger.warning("Log polling for %s failed: %s", subject_id, e)
            return 0

        if not new_records:
            return 0

        with self._lock:
            if epoch != self._epoch:
                logger.debug("Dropping late batch for %s (epoch %d != %d)",
                             subject_id, epoch, self._epoch)
                return 0
            self._records.extend(new_records)
            self._last_seen_id = max(self._last_seen_id, max_id)
            if self._following:
                self._scroll_requested = True
            callback = self._on_append

        logger.debug("Appended %d log(s) for %s, last_seen_id=%d",
                     len(new_records), subject_id, self._last_seen_id)
        if callback is not None:
            callback(new_records)
        return len(new_records)

    def follow(self):
        self.set_following(True)

    def unfollow(self):
        self.set_following(False)

    def toggle_following(self) -> bool:
        with self._lock:
            following = not self._following
        self.set_following(following)
        return following

    def set_following(self, following: bool):
        """Start or stop the poll timer. An in-flight poll is not awaited."""
        with self._lock:
            if following:
                self._start_following()
            else:
                self._following = False
                self._cancel_timer()

    def consume_scroll_request(self) -> bool:
        """Return the "scroll to bottom" hint once, then clear it."""
        with self._lock:
            requested = self._scroll_requested
            self._scroll_requested = False
            return requested

    def close(self):
        """Stop polling and drop any response still in flight."""
        with self._lock:
            self._cancel_timer()
            self._following = False
            self._epoch += 1

    def _start_following(self):
        self._following = True
        if self._timer is None:
            self._timer = self._scheduler.every(self._poll_interval, self.poll)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
