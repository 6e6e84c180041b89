"""HTTP client for the cluster management API."""

from typing import Any

import requests
from pydantic import ValidationError

from cluster_monitor.config import DEFAULT_REQUEST_TIMEOUT
from cluster_monitor.exceptions import (
    AuthorizationError,
    CredentialRejectedError,
    MalformedResponseError,
    NetworkError,
)
from cluster_monitor.logging_config import get_logger
from cluster_monitor.models.api import ErrorResponse, TokenResponse, UiConfig

logger = get_logger(__name__)

# Response bodies longer than this are cut in the debug log.
MAX_LOGGED_BODY = 2000


class ClusterApiClient:
    """Typed wrapper around the five endpoints the dashboard consumes.

    The client keeps no credential of its own: callers pass the bearer token
    per request, so one client can be shared by concurrent workers.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL, e.g. http://localhost:8080
            timeout: Per-request timeout in seconds
            session: Optional requests session (mainly for tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def get_config(self) -> UiConfig:
        """Fetch UI configuration (whether authentication is enabled)."""
        data = self._request("GET", "/api/v1/config")
        return self._parse(UiConfig, data, "config")

    def login(self, username: str, password: str) -> TokenResponse:
        """Submit credentials and return the issued tokens.

        Raises:
            CredentialRejectedError: If the server rejects the credentials
            NetworkError: If the server cannot be reached
        """
        try:
            data = self._request(
                "POST",
                "/api/v1/session",
                json={"username": username, "password": password},
                redact=True,
            )
        except AuthorizationError as e:
            raise CredentialRejectedError(e.message, e.details, status_code=e.status_code) from e
        except NetworkError as e:
            if e.status_code is not None and 400 <= e.status_code < 500:
                raise CredentialRejectedError(
                    e.message, e.details, status_code=e.status_code
                ) from e
            raise
        return self._parse(TokenResponse, data, "login")

    def refresh_session(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new token pair."""
        data = self._request("GET", "/api/v1/session", token=refresh_token, redact=True)
        return self._parse(TokenResponse, data, "session refresh")

    def get_cluster_info(self, token: str | None = None) -> dict[str, Any]:
        """Fetch the raw cluster overview."""
        data = self._request("GET", "/api/v1/cluster", token=token)
        if not isinstance(data, dict):
            raise MalformedResponseError("Cluster overview is not a JSON object")
        return data

    def get_tiers(self, token: str | None = None) -> list[Any]:
        """Fetch the raw tier/replicaset/instance tree."""
        data = self._request("GET", "/api/v1/tiers", token=token)
        if not isinstance(data, list):
            raise MalformedResponseError("Tiers response is not a JSON array")
        return data

    def _request(
        self,
        method: str,
        path: str,
        token: str | None = None,
        json: dict[str, Any] | None = None,
        redact: bool = False,
    ) -> Any:
        """Perform a request and decode the JSON body.

        Raises:
            NetworkError: Connection failure, timeout or other failed status
            AuthorizationError: 401 or 403
            MalformedResponseError: Body is not valid JSON
        """
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method, url, headers=headers, json=json, timeout=self.timeout
            )
        except requests.Timeout as e:
            logger.debug(f"  TIMEOUT: {e}")
            raise NetworkError(f"Request to {path} timed out", str(e)) from e
        except requests.ConnectionError as e:
            logger.debug(f"  CONNECTION ERROR: {e}")
            raise NetworkError(f"Cannot connect to {self.base_url}", str(e)) from e
        except requests.RequestException as e:
            logger.debug(f"  REQUEST ERROR: {e}")
            raise NetworkError(f"Request to {path} failed", str(e)) from e

        status = response.status_code
        if not response.ok:
            text = response.text
            logger.debug(f"  ERROR {status}: {text[:MAX_LOGGED_BODY]}")
            message = self._error_message(text) or f"{method} {path} failed with HTTP {status}"
            if status in (401, 403):
                raise AuthorizationError(message, status_code=status)
            raise NetworkError(message, f"HTTP {status}", status_code=status)

        if redact:
            logger.debug(f"  OK {status}: (tokens received)")
        else:
            logger.debug(f"  OK {status}: {response.text[:MAX_LOGGED_BODY]}")

        try:
            return response.json()
        except ValueError as e:
            logger.debug(f"  PARSE ERROR: {e}")
            raise MalformedResponseError(f"Response from {path} is not valid JSON", str(e)) from e

    @staticmethod
    def _error_message(text: str) -> str | None:
        """Extract errorMessage from an error body, if it has one."""
        try:
            body = ErrorResponse.model_validate_json(text)
        except ValidationError:
            return None
        return body.error_message or None

    @staticmethod
    def _parse(model, data: Any, what: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Failed to parse {what} response", str(e)) from e
