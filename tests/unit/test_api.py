"""Unit tests for the cluster API client."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from cluster_monitor.api import ClusterApiClient
from cluster_monitor.exceptions import (
    AuthorizationError,
    CredentialRejectedError,
    MalformedResponseError,
    NetworkError,
)


def make_response(status=200, body=None, text=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 400
    if text is None:
        text = json.dumps(body) if body is not None else ""
    response.text = text
    if body is not None:
        response.json.return_value = body
    else:
        response.json.side_effect = ValueError("Expecting value")
    return response


@pytest.fixture
def http():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(http):
    return ClusterApiClient("http://localhost:8080/", timeout=3.0, session=http)


def test_base_url_trailing_slash_stripped(client):
    assert client.base_url == "http://localhost:8080"


def test_get_config(client, http):
    http.request.return_value = make_response(body={"isAuthEnabled": True})

    config = client.get_config()

    assert config.is_auth_enabled is True
    http.request.assert_called_once_with(
        "GET", "http://localhost:8080/api/v1/config", headers={}, json=None, timeout=3.0
    )


def test_data_requests_send_bearer_token(client, http):
    http.request.return_value = make_response(body=[])

    assert client.get_tiers("abc") == []

    _, kwargs = http.request.call_args
    assert kwargs["headers"] == {"Authorization": "Bearer abc"}


def test_requests_without_token_have_no_authorization_header(client, http):
    http.request.return_value = make_response(body={"clusterName": "demo"})

    client.get_cluster_info(None)

    _, kwargs = http.request.call_args
    assert "Authorization" not in kwargs["headers"]


def test_login_posts_credentials(client, http):
    http.request.return_value = make_response(body={"auth": "a.b.c", "refresh": "r"})

    tokens = client.login("admin", "secret")

    assert tokens.auth == "a.b.c"
    assert tokens.refresh == "r"
    args, kwargs = http.request.call_args
    assert args == ("POST", "http://localhost:8080/api/v1/session")
    assert kwargs["json"] == {"username": "admin", "password": "secret"}


@pytest.mark.parametrize("status", [400, 401, 403])
def test_login_rejected(client, http, status):
    http.request.return_value = make_response(
        status, body={"error": "wrong", "errorMessage": "Invalid username or password"}
    )

    with pytest.raises(CredentialRejectedError) as exc_info:
        client.login("admin", "nope")

    assert exc_info.value.message == "Invalid username or password"
    assert exc_info.value.status_code == status


def test_login_server_error_is_not_a_rejection(client, http):
    http.request.return_value = make_response(500, text="internal error")

    with pytest.raises(NetworkError) as exc_info:
        client.login("admin", "secret")

    assert exc_info.value.status_code == 500


def test_login_response_without_token(client, http):
    http.request.return_value = make_response(body={"refresh": "r"})

    with pytest.raises(MalformedResponseError):
        client.login("admin", "secret")


def test_refresh_session_uses_refresh_token(client, http):
    http.request.return_value = make_response(body={"auth": "new", "refresh": "new-r"})

    tokens = client.refresh_session("old-r")

    assert tokens.auth == "new"
    args, kwargs = http.request.call_args
    assert args == ("GET", "http://localhost:8080/api/v1/session")
    assert kwargs["headers"] == {"Authorization": "Bearer old-r"}


@pytest.mark.parametrize("status", [401, 403])
def test_unauthorized_data_request(client, http, status):
    http.request.return_value = make_response(status, text="")

    with pytest.raises(AuthorizationError) as exc_info:
        client.get_tiers("expired")

    assert exc_info.value.status_code == status


def test_server_error_uses_error_message(client, http):
    http.request.return_value = make_response(
        500, body={"error": "internal", "errorMessage": "storage unavailable"}
    )

    with pytest.raises(NetworkError) as exc_info:
        client.get_cluster_info("t")

    assert exc_info.value.message == "storage unavailable"
    assert exc_info.value.status_code == 500


def test_server_error_without_body(client, http):
    http.request.return_value = make_response(502, text="<html>Bad Gateway</html>")

    with pytest.raises(NetworkError) as exc_info:
        client.get_tiers("t")

    assert "HTTP 502" in exc_info.value.message


def test_connection_error(client, http):
    http.request.side_effect = requests.ConnectionError("Connection refused")

    with pytest.raises(NetworkError) as exc_info:
        client.get_config()

    assert "Cannot connect to http://localhost:8080" in exc_info.value.message
    assert exc_info.value.status_code is None


def test_timeout(client, http):
    http.request.side_effect = requests.Timeout("read timed out")

    with pytest.raises(NetworkError) as exc_info:
        client.get_tiers("t")

    assert "timed out" in exc_info.value.message


def test_invalid_json(client, http):
    http.request.return_value = make_response(200, text="not json")

    with pytest.raises(MalformedResponseError):
        client.get_tiers("t")


def test_tiers_must_be_a_list(client, http):
    http.request.return_value = make_response(body={"tiers": []})

    with pytest.raises(MalformedResponseError):
        client.get_tiers("t")


def test_cluster_info_must_be_an_object(client, http):
    http.request.return_value = make_response(body=[1, 2])

    with pytest.raises(MalformedResponseError):
        client.get_cluster_info("t")


def test_config_with_missing_field(client, http):
    http.request.return_value = make_response(body={})

    with pytest.raises(MalformedResponseError):
        client.get_config()
