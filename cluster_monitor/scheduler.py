"""Refresh scheduling and the fetch-path error boundary."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import requests
from pydantic import ValidationError

from cluster_monitor.exceptions import (
    ApiError,
    ClusterMonitorError,
    MalformedResponseError,
    NetworkError,
)
from cluster_monitor.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_BACKOFF = 60.0


@dataclass(frozen=True)
class JobResult:
    """Outcome of a background job: a value or a classified error."""

    value: Any = None
    error: ClusterMonitorError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_job(func: Callable[..., Any], *args: Any) -> JobResult:
    """Run a fetch-path job and classify any failure.

    This is the only place fetch-path exceptions are caught; whatever leaves
    it is a JobResult carrying one of the documented error kinds.
    """
    try:
        return JobResult(value=func(*args))
    except ClusterMonitorError as e:
        return JobResult(error=e)
    except requests.RequestException as e:
        return JobResult(error=NetworkError("Request failed", str(e)))
    except ValidationError as e:
        return JobResult(error=MalformedResponseError("Unexpected response format", str(e)))
    except Exception as e:
        logger.error(f"Unexpected error in background job: {e}", exc_info=True)
        return JobResult(error=NetworkError("Unexpected error while fetching", str(e)))


def describe_error(error: ClusterMonitorError) -> str:
    """Short one-line description for banners."""
    if isinstance(error, ApiError) and error.status_code:
        return f"{error.message} (HTTP {error.status_code})"
    return error.message


class SchedulerState(Enum):
    IDLE = "idle"
    FETCH_IN_FLIGHT = "fetch_in_flight"
    BACKOFF = "backoff"


class RefreshScheduler:
    """Decides when a snapshot fetch starts.

    At most one fetch is ever in flight. The caller launches the actual work
    for every fetch id this class hands out and reports back through
    complete().
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
    ):
        """Initialize the scheduler.

        Args:
            interval: Seconds between polls, 0 disables timer-driven polls
            clock: Monotonic time source
            max_backoff: Upper bound for the delay after repeated failures
        """
        self.interval = interval
        self.clock = clock
        self.max_backoff = max_backoff
        self.state = SchedulerState.IDLE
        self.fetch_id = 0
        self.failures = 0
        self.next_due = clock()
        self.stopped = False

    @property
    def enabled(self) -> bool:
        return self.interval > 0

    @property
    def in_flight(self) -> bool:
        return self.state is SchedulerState.FETCH_IN_FLIGHT

    def tick(self, now: float | None = None) -> int | None:
        """Timer callback. Returns the id of a fetch to launch, or None."""
        if self.stopped or not self.enabled:
            return None
        if self.in_flight:
            logger.debug("Refresh already in progress, dropping tick")
            return None
        now = self.clock() if now is None else now
        if now < self.next_due:
            return None
        return self._start(now)

    def manual_refresh(self, now: float | None = None) -> int | None:
        """User-triggered refresh. Returns the id of a fetch to launch, or None."""
        if self.stopped:
            return None
        if self.in_flight:
            logger.debug("Refresh already in progress, ignoring manual refresh")
            return None
        now = self.clock() if now is None else now
        return self._start(now)

    def is_current(self, fetch_id: int) -> bool:
        """Check whether a completion belongs to the fetch in flight."""
        return not self.stopped and self.in_flight and fetch_id == self.fetch_id

    def complete(self, fetch_id: int, ok: bool, now: float | None = None) -> bool:
        """Record the end of a fetch. Stale or post-shutdown completions are ignored."""
        if not self.is_current(fetch_id):
            logger.debug(f"Ignoring completion of stale fetch {fetch_id}")
            return False
        now = self.clock() if now is None else now
        if ok:
            self.failures = 0
            self.state = SchedulerState.IDLE
            self.next_due = now + self.interval
        else:
            self.failures += 1
            delay = min(self.interval * 2 ** (self.failures - 1), self.max_backoff)
            self.state = SchedulerState.BACKOFF
            self.next_due = now + delay
            logger.debug(
                f"Fetch {fetch_id} failed ({self.failures} in a row), next in {delay:.1f}s"
            )
        return True

    def shutdown(self) -> None:
        """Stop scheduling; completions that arrive later are discarded."""
        self.stopped = True

    def _start(self, now: float) -> int:
        self.fetch_id += 1
        self.state = SchedulerState.FETCH_IN_FLIGHT
        self.next_due = now + self.interval
        logger.debug(f"Starting fetch {self.fetch_id}")
        return self.fetch_id
