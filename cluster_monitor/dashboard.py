"""Dashboard controller: wires the session, scheduler and view together.

Everything here runs on the UI loop. Network work is handed to a launcher,
which runs it elsewhere and feeds the resulting Completion back into
Dashboard.handle(). Jobs never touch dashboard state themselves.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from cluster_monitor.api import ClusterApiClient
from cluster_monitor.exceptions import AuthorizationError
from cluster_monitor.logging_config import get_logger
from cluster_monitor.models.cluster import Cluster
from cluster_monitor.scheduler import JobResult, RefreshScheduler, describe_error, run_job
from cluster_monitor.session import SessionManager
from cluster_monitor.snapshot import build_cluster
from cluster_monitor.view import ViewEngine

logger = get_logger(__name__)


class JobKind(Enum):
    CONFIG = "config"
    LOGIN = "login"
    SNAPSHOT = "snapshot"
    RENEWAL = "renewal"


@dataclass(frozen=True)
class Completion:
    """Result of a background job, delivered back to the UI loop."""

    kind: JobKind
    result: JobResult
    fetch_id: int = 0
    retry: bool = False


# Runs the given work off the UI loop and delivers its Completion to Dashboard.handle()
Launcher = Callable[[Callable[[], Completion]], None]


def fetch_snapshot(client: ClusterApiClient, token: str | None) -> Cluster:
    """Fetch overview and tiers and build one snapshot."""
    overview = client.get_cluster_info(token)
    tiers = client.get_tiers(token)
    return build_cluster(overview, tiers)


class Dashboard:
    """Coordinates polling, authentication and the displayed view."""

    def __init__(
        self,
        client: ClusterApiClient,
        session: SessionManager,
        scheduler: RefreshScheduler,
        launcher: Launcher,
        view: ViewEngine | None = None,
    ):
        self.client = client
        self.session = session
        self.scheduler = scheduler
        self.view = view or ViewEngine()
        self._launcher = launcher
        self.configured = False
        self.config_in_flight = False
        self.login_in_flight = False
        self.banner: str | None = None
        self.last_updated: datetime | None = None
        self.running = True
        self._config_retry_due = 0.0

    @property
    def loading(self) -> bool:
        return self.config_in_flight or self.login_in_flight or self.scheduler.in_flight

    @property
    def needs_login(self) -> bool:
        return self.configured and self.session.needs_login

    def start(self) -> None:
        """Ask the server whether authentication is required."""
        if self.config_in_flight or not self.running:
            return
        self.config_in_flight = True
        self._launch(JobKind.CONFIG, self.client.get_config)

    def tick(self) -> bool:
        """Timer callback. Returns True if a request was started."""
        if not self.running:
            return False
        if not self.configured:
            if (
                self.scheduler.enabled
                and not self.config_in_flight
                and self.scheduler.clock() >= self._config_retry_due
            ):
                self.start()
                return True
            return False
        if not self.session.is_authenticated:
            return False
        fetch_id = self.scheduler.tick()
        if fetch_id is None:
            return False
        self._launch_snapshot(fetch_id)
        return True

    def refresh(self) -> bool:
        """Manual refresh. Returns True if a request was started."""
        if not self.running:
            return False
        if not self.configured:
            if self.config_in_flight:
                return False
            self.start()
            return True
        if not self.session.is_authenticated:
            return False
        fetch_id = self.scheduler.manual_refresh()
        if fetch_id is None:
            return False
        self._launch_snapshot(fetch_id)
        return True

    def login(self, username: str, password: str, remember: bool = False) -> bool:
        job = self.session.begin_login(username, password, remember)
        if job is None:
            return False
        self.login_in_flight = True
        self._launch(JobKind.LOGIN, job)
        return True

    def logout(self) -> None:
        """Forget credentials and stop the dashboard."""
        self.session.logout()
        self.shutdown()

    def shutdown(self) -> None:
        """Stop handling results; in-flight work is abandoned, not awaited."""
        self.running = False
        self.scheduler.shutdown()

    def handle(self, completion: Completion) -> None:
        """Apply a job completion. Must be called on the UI loop."""
        if not self.running:
            logger.debug(f"Discarding {completion.kind.value} result after shutdown")
            return

        match completion.kind:
            case JobKind.CONFIG:
                self._on_config(completion.result)
            case JobKind.LOGIN:
                self._on_login(completion.result)
            case JobKind.SNAPSHOT:
                self._on_snapshot(completion)
            case JobKind.RENEWAL:
                self._on_renewal(completion)

    def _on_config(self, result: JobResult) -> None:
        self.config_in_flight = False
        if not result.ok:
            self.banner = f"Failed to connect: {describe_error(result.error)}"
            self._config_retry_due = self.scheduler.clock() + self.scheduler.interval
            logger.warning(self.banner)
            return
        self.configured = True
        self.banner = None
        self.session.on_config(result.value.is_auth_enabled)
        if self.session.is_authenticated:
            self.refresh()

    def _on_login(self, result: JobResult) -> None:
        self.login_in_flight = False
        if not result.ok:
            self.session.on_login_failure(result.error)
            return
        self.session.on_login_success(result.value)
        if self.session.is_authenticated:
            self.refresh()

    def _on_snapshot(self, completion: Completion) -> None:
        fetch_id = completion.fetch_id
        if not self.scheduler.is_current(fetch_id):
            logger.debug(f"Discarding stale snapshot {fetch_id}")
            return

        result = completion.result
        if result.ok:
            self.view.apply_snapshot(result.value)
            self.banner = None
            self.last_updated = datetime.now()
            self.scheduler.complete(fetch_id, ok=True)
            return

        error = result.error
        if isinstance(error, AuthorizationError) and self.session.auth_required:
            if not completion.retry:
                job = self.session.begin_renewal()
                if job is not None:
                    logger.debug(f"Fetch {fetch_id} unauthorized, renewing session")
                    self._launch(JobKind.RENEWAL, job, fetch_id=fetch_id)
                    return
            else:
                self.session.expire("Session expired, please log in again")
            # Rows already on screen stay until a post-login poll succeeds
            self.scheduler.complete(fetch_id, ok=False)
            return

        self.banner = describe_error(error)
        logger.warning(f"Fetch {fetch_id} failed: {self.banner}")
        self.scheduler.complete(fetch_id, ok=False)

    def _on_renewal(self, completion: Completion) -> None:
        fetch_id = completion.fetch_id
        if not self.scheduler.is_current(fetch_id):
            return
        result = completion.result
        if not result.ok:
            self.session.on_renewal_failure(result.error)
            self.scheduler.complete(fetch_id, ok=False)
            return
        self.session.on_renewal_success(result.value)
        self._launch_snapshot(fetch_id, retry=True)

    def _launch_snapshot(self, fetch_id: int, retry: bool = False) -> None:
        client = self.client
        token = self.session.credential
        self._launch(JobKind.SNAPSHOT, lambda: fetch_snapshot(client, token), fetch_id, retry)

    def _launch(
        self, kind: JobKind, job: Callable[[], Any], fetch_id: int = 0, retry: bool = False
    ) -> None:
        def work() -> Completion:
            return Completion(kind, run_job(job), fetch_id, retry)

        self._launcher(work)
