"""Authentication state machine.

States and transitions::

    UNAUTHENTICATED --begin_login--> LOGGING_IN --success--> AUTHENTICATED
                                      LOGGING_IN --failure--> LOGIN_FAILED --begin_login--> ...
    AUTHENTICATED --begin_renewal--> RENEWING_TOKEN --success--> AUTHENTICATED
                                     RENEWING_TOKEN --failure--> UNAUTHENTICATED
    AUTHENTICATED --expire--> UNAUTHENTICATED

When the server has authentication disabled the manager sits in
AUTHENTICATED without a credential.

All methods run on the UI loop. The jobs returned by begin_login() and
begin_renewal() only perform the request and return its result; applying
the result is done by the on_* methods.
"""

from collections.abc import Callable
from enum import Enum

from cluster_monitor.api import ClusterApiClient
from cluster_monitor.exceptions import ClusterMonitorError, PersistenceError
from cluster_monitor.logging_config import get_logger
from cluster_monitor.models.api import TokenResponse
from cluster_monitor.models.session import Session
from cluster_monitor.tokens import TokenStore

logger = get_logger(__name__)


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    LOGGING_IN = "logging_in"
    LOGIN_FAILED = "login_failed"
    AUTHENTICATED = "authenticated"
    RENEWING_TOKEN = "renewing_token"


class SessionManager:
    """Owns the credential and the remembered-session file."""

    def __init__(self, client: ClusterApiClient, store: TokenStore | None = None):
        """Initialize the manager.

        Args:
            client: API client used for login and renewal jobs
            store: Token store for "remember me"; None disables persistence
        """
        self.client = client
        self.store = store
        self.state = SessionState.UNAUTHENTICATED
        self.auth_required = True
        self.session: Session | None = None
        self.login_error: str | None = None
        self.expired_reason: str | None = None
        self._pending_remember = False

    @property
    def url(self) -> str:
        return self.client.base_url

    @property
    def credential(self) -> str | None:
        """Bearer token to attach to data requests."""
        if self.state is SessionState.AUTHENTICATED and self.session is not None:
            return self.session.access_token
        return None

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def needs_login(self) -> bool:
        return self.auth_required and self.state in (
            SessionState.UNAUTHENTICATED,
            SessionState.LOGGING_IN,
            SessionState.LOGIN_FAILED,
        )

    @property
    def remembered(self) -> bool:
        return self.session is not None and self.session.remember

    def on_config(self, auth_enabled: bool) -> None:
        """Apply the server's auth setting and try the remembered session."""
        self.auth_required = auth_enabled
        if not auth_enabled:
            logger.info("Authentication disabled on server")
            self.session = None
            self._transition(SessionState.AUTHENTICATED)
            return

        session = self._load_remembered()
        if session is not None and not session.is_expired():
            logger.info("Using remembered session")
            self.session = session
            self._transition(SessionState.AUTHENTICATED)
            return
        if session is not None:
            logger.info("Remembered session has expired")
        self._transition(SessionState.UNAUTHENTICATED)

    def begin_login(
        self, username: str, password: str, remember: bool = False
    ) -> Callable[[], TokenResponse] | None:
        """Start a login attempt.

        Returns:
            Job that performs the login request, or None if a login cannot start
        """
        if self.state is SessionState.LOGGING_IN or not username:
            return None
        self.login_error = None
        self._pending_remember = remember
        self._transition(SessionState.LOGGING_IN)
        client = self.client

        def job() -> TokenResponse:
            return client.login(username, password)

        return job

    def on_login_success(self, tokens: TokenResponse) -> None:
        if self.state is not SessionState.LOGGING_IN:
            logger.debug("Ignoring login result outside of login")
            return
        remember = self._pending_remember
        self.session = Session.from_tokens(tokens.auth, tokens.refresh, remember)
        self.expired_reason = None
        if remember:
            self._persist()
        else:
            self._forget()
        self._transition(SessionState.AUTHENTICATED)

    def on_login_failure(self, error: ClusterMonitorError) -> None:
        if self.state is not SessionState.LOGGING_IN:
            return
        self.login_error = error.message
        self._transition(SessionState.LOGIN_FAILED)

    def begin_renewal(self) -> Callable[[], TokenResponse] | None:
        """React to an authorization failure with one silent renewal.

        Returns:
            Job that performs the session-refresh request, or None when there
            is nothing to renew with (the session is then expired)
        """
        if self.state is not SessionState.AUTHENTICATED:
            return None
        refresh_token = self.session.refresh_token if self.session else None
        if not refresh_token:
            self.expire("Session expired, please log in again")
            return None
        self._transition(SessionState.RENEWING_TOKEN)
        client = self.client

        def job() -> TokenResponse:
            return client.refresh_session(refresh_token)

        return job

    def on_renewal_success(self, tokens: TokenResponse) -> None:
        if self.state is not SessionState.RENEWING_TOKEN:
            return
        remember = self.remembered
        refresh = tokens.refresh or (self.session.refresh_token if self.session else None)
        self.session = Session.from_tokens(tokens.auth, refresh, remember)
        if remember:
            self._persist()
        self._transition(SessionState.AUTHENTICATED)

    def on_renewal_failure(self, error: ClusterMonitorError) -> None:
        if self.state is not SessionState.RENEWING_TOKEN:
            return
        logger.info(f"Session renewal failed: {error.message}")
        self._forget()
        self.session = None
        self.expired_reason = "Session expired, please log in again"
        self._transition(SessionState.UNAUTHENTICATED)

    def expire(self, reason: str) -> None:
        """Drop the credential after an authorization failure that renewal did not fix."""
        if not self.auth_required:
            return
        self._forget()
        self.session = None
        self.expired_reason = reason
        self._transition(SessionState.UNAUTHENTICATED)

    def logout(self) -> None:
        """Forget the remembered session and the in-memory credential."""
        self._forget()
        self.session = None
        self.login_error = None
        self._transition(SessionState.UNAUTHENTICATED)

    def _transition(self, state: SessionState) -> None:
        if state is not self.state:
            logger.debug(f"Session {self.state.value} -> {state.value}")
        self.state = state

    def _load_remembered(self) -> Session | None:
        if self.store is None:
            return None
        try:
            return self.store.load(self.url)
        except PersistenceError as e:
            logger.warning(f"Ignoring remembered session: {e.message}")
            return None

    def _persist(self) -> None:
        if self.store is None or self.session is None:
            return
        try:
            self.store.save(self.url, self.session)
        except PersistenceError as e:
            logger.warning(f"Could not remember session: {e.message}")

    def _forget(self) -> None:
        if self.store is None:
            return
        try:
            self.store.delete(self.url)
        except PersistenceError as e:
            logger.warning(f"Could not remove remembered session: {e.message}")
