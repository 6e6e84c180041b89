"""Unit tests for the session manager."""

import base64
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from cluster_monitor.exceptions import CredentialRejectedError, NetworkError
from cluster_monitor.models.api import TokenResponse
from cluster_monitor.models.session import Session, token_expiry
from cluster_monitor.session import SessionManager, SessionState
from cluster_monitor.tokens import TokenStore

URL = "http://localhost:8080"


def make_jwt(exp):
    def part(data):
        return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()

    return f"{part({'alg': 'HS256'})}.{part({'exp': exp, 'sub': 'admin'})}.sig"


@pytest.fixture
def client():
    api = MagicMock()
    api.base_url = URL
    return api


@pytest.fixture
def store(tmp_path):
    return TokenStore(tmp_path / "tokens.json")


@pytest.fixture
def manager(client, store):
    return SessionManager(client, store)


def logged_in(manager, remember=False, refresh="refresh"):
    manager.on_config(True)
    manager.begin_login("admin", "secret", remember)
    manager.on_login_success(TokenResponse(auth="access", refresh=refresh))
    return manager


def test_token_expiry_reads_exp_claim():
    assert token_expiry(make_jwt(1893456000)) == datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("token", ["opaque", "a.b.c", make_jwt("soon"), make_jwt(True)])
def test_token_expiry_unreadable(token):
    assert token_expiry(token) is None


def test_session_expiry():
    past = Session(access_token="t", expiry=datetime.now(timezone.utc) - timedelta(minutes=1))
    future = Session(access_token="t", expiry=datetime.now(timezone.utc) + timedelta(hours=1))

    assert past.is_expired()
    assert not future.is_expired()
    assert not Session(access_token="t").is_expired()


def test_auth_disabled(manager):
    manager.on_config(False)

    assert manager.state is SessionState.AUTHENTICATED
    assert not manager.needs_login
    assert manager.credential is None


def test_auth_enabled_without_remembered_session(manager):
    manager.on_config(True)

    assert manager.state is SessionState.UNAUTHENTICATED
    assert manager.needs_login


def test_remembered_session_skips_login(client, store):
    store.save(URL, Session(access_token="saved", refresh_token="r", remember=True))
    manager = SessionManager(client, store)

    manager.on_config(True)

    assert manager.is_authenticated
    assert manager.credential == "saved"
    assert manager.remembered


def test_expired_remembered_session_requires_login(client, store):
    expired = datetime.now(timezone.utc) - timedelta(hours=1)
    store.save(URL, Session(access_token="saved", expiry=expired, remember=True))
    manager = SessionManager(client, store)

    manager.on_config(True)

    assert manager.needs_login


def test_unreadable_token_file_requires_login(client, tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text("{broken")
    manager = SessionManager(client, TokenStore(path))

    manager.on_config(True)

    assert manager.needs_login


def test_out_of_range_expiry_requires_login(client, tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text(json.dumps({URL: {"token": "saved", "expiry": 1e20}}))
    manager = SessionManager(client, TokenStore(path))

    manager.on_config(True)

    assert manager.state is SessionState.UNAUTHENTICATED
    assert manager.needs_login


def test_login_job_calls_client(manager, client):
    manager.on_config(True)
    client.login.return_value = TokenResponse(auth="access", refresh="refresh")

    job = manager.begin_login("admin", "secret")

    assert manager.state is SessionState.LOGGING_IN
    assert job().auth == "access"
    client.login.assert_called_once_with("admin", "secret")


def test_second_login_while_logging_in_is_refused(manager):
    manager.on_config(True)
    manager.begin_login("admin", "secret")

    assert manager.begin_login("admin", "secret") is None


def test_login_requires_username(manager):
    manager.on_config(True)

    assert manager.begin_login("", "secret") is None
    assert manager.state is SessionState.UNAUTHENTICATED


def test_login_success(manager, store):
    logged_in(manager)

    assert manager.is_authenticated
    assert manager.credential == "access"
    assert not manager.remembered
    assert store.load(URL) is None


def test_login_with_remember_persists(manager, store):
    logged_in(manager, remember=True)

    saved = store.load(URL)
    assert saved.access_token == "access"
    assert saved.refresh_token == "refresh"


def test_login_without_remember_forgets_previous(manager, store):
    expired = datetime(2000, 1, 1, tzinfo=timezone.utc)
    store.save(URL, Session(access_token="old", remember=True, expiry=expired))

    logged_in(manager, remember=False)

    assert store.load(URL) is None


def test_login_failure(manager):
    manager.on_config(True)
    manager.begin_login("admin", "wrong")

    error = CredentialRejectedError("Invalid username or password", status_code=401)
    manager.on_login_failure(error)

    assert manager.state is SessionState.LOGIN_FAILED
    assert manager.login_error == "Invalid username or password"
    assert manager.needs_login
    assert manager.begin_login("admin", "right") is not None
    assert manager.login_error is None


def test_renewal_job_uses_refresh_token(manager, client):
    logged_in(manager)
    client.refresh_session.return_value = TokenResponse(auth="renewed")

    job = manager.begin_renewal()

    assert manager.state is SessionState.RENEWING_TOKEN
    assert manager.credential is None
    job()
    client.refresh_session.assert_called_once_with("refresh")


def test_renewal_success_keeps_refresh_token(manager):
    logged_in(manager)
    manager.begin_renewal()

    manager.on_renewal_success(TokenResponse(auth="renewed"))

    assert manager.is_authenticated
    assert manager.credential == "renewed"
    assert manager.session.refresh_token == "refresh"


def test_renewal_success_updates_remembered_session(manager, store):
    logged_in(manager, remember=True)
    manager.begin_renewal()

    manager.on_renewal_success(TokenResponse(auth="renewed", refresh="refresh-2"))

    saved = store.load(URL)
    assert saved.access_token == "renewed"
    assert saved.refresh_token == "refresh-2"


def test_renewal_failure_logs_out(manager, store):
    logged_in(manager, remember=True)
    manager.begin_renewal()

    manager.on_renewal_failure(NetworkError("Cannot connect"))

    assert manager.state is SessionState.UNAUTHENTICATED
    assert manager.needs_login
    assert manager.expired_reason == "Session expired, please log in again"
    assert store.load(URL) is None


def test_renewal_without_refresh_token_expires(manager):
    logged_in(manager, refresh=None)

    assert manager.begin_renewal() is None
    assert manager.state is SessionState.UNAUTHENTICATED
    assert manager.expired_reason is not None


def test_renewal_only_when_authenticated(manager):
    manager.on_config(True)

    assert manager.begin_renewal() is None


def test_expire_ignored_when_auth_disabled(manager):
    manager.on_config(False)

    manager.expire("Unauthorized")

    assert manager.is_authenticated


def test_logout_forgets_everything(manager, store):
    logged_in(manager, remember=True)

    manager.logout()

    assert manager.state is SessionState.UNAUTHENTICATED
    assert manager.session is None
    assert store.load(URL) is None


def test_manager_without_store(client):
    manager = SessionManager(client)

    logged_in(manager, remember=True)
    manager.logout()

    assert manager.state is SessionState.UNAUTHENTICATED
