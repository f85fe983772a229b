import pytest
import requests

from conftest import (
    BASE,
    CONNECTIONS_URL,
    LOGIN_URL,
    connection_dict,
    connections_ok,
    glucose_dict,
    graph_ok,
    graph_url,
    login_bad_credentials,
    login_ok,
    login_redirect,
    methods,
)
from librelinkup.client import (
    ACCOUNT_ENDPOINT,
    COUNTRY_CONFIG_ENDPOINT,
    USER_ENDPOINT,
    LibreLinkUpClient,
)
from librelinkup.config import ClientConfig
from librelinkup.errors import (
    AuthFailedError,
    BadCredentialsError,
    InvalidResponseError,
    NoConnectionsError,
    TransportError,
)
from librelinkup.models import TrendType
from librelinkup.utils import sha256_hex

USER_URL = BASE + USER_ENDPOINT
COUNTRY_URL = BASE + COUNTRY_CONFIG_ENDPOINT


def test_empty_credentials_are_rejected():
    with pytest.raises(AuthFailedError):
        LibreLinkUpClient(ClientConfig(username="  ", password="x"))
    with pytest.raises(AuthFailedError):
        LibreLinkUpClient(ClientConfig(username="a@b.c", password=""))


def test_first_call_logs_in_exactly_once(client, http):
    http.post(LOGIN_URL, json=login_ok())
    http.get(USER_URL, json={"status": 0, "data": {"user": {}}})

    body = client.get_user()

    assert body["status"] == 0
    assert methods(http) == [("POST", LOGIN_URL), ("GET", USER_URL)]


def test_request_carries_bearer_and_hashed_account_id(client, http):
    http.post(LOGIN_URL, json=login_ok(user_id="acc-42", token="tok-42"))
    http.get(BASE + ACCOUNT_ENDPOINT, json={"status": 0})

    client.get_account()

    headers = http.calls[1].request.headers
    assert headers["Authorization"] == "Bearer tok-42"
    assert headers["Account-Id"] == sha256_hex("acc-42")
    assert headers["Account-Id"] != "acc-42"
    assert headers["Accept"] == "application/json"
    assert headers["Accept-Encoding"] == "gzip"


def test_existing_token_skips_login(client, http):
    client.state.set_credentials("tok", "acc")
    http.get(USER_URL, json={"status": 0})

    client.get_user()

    assert methods(http) == [("GET", USER_URL)]


@pytest.mark.parametrize("failure", [
    {"status": 401, "body": "unauthorized"},
    {"status": 200, "body": "not json"},
    {"body": requests.ConnectionError("reset")},
])
def test_failed_request_relogs_in_and_retries_once(client, http, failure):
    client.state.set_credentials("stale", "acc")
    http.get(USER_URL, **failure)
    http.post(LOGIN_URL, json=login_ok(token="fresh"))
    http.get(USER_URL, json={"status": 0, "data": "ok"})

    body = client.get_user()

    assert body["data"] == "ok"
    assert methods(http) == [("GET", USER_URL), ("POST", LOGIN_URL), ("GET", USER_URL)]
    assert http.calls[2].request.headers["Authorization"] == "Bearer fresh"


def test_failed_retry_propagates_unchanged(client, http):
    client.state.set_credentials("stale", "acc")
    http.get(USER_URL, status=500, body="first")
    http.post(LOGIN_URL, json=login_ok())
    http.get(USER_URL, status=503, body="second")

    with pytest.raises(InvalidResponseError) as exc:
        client.get_user()

    assert exc.value.status_code == 503
    assert exc.value.body == "second"
    assert len(http.calls) == 3


def test_transport_error_on_retry_propagates(client, http):
    client.state.set_credentials("stale", "acc")
    http.get(USER_URL, body=requests.Timeout("slow"))
    http.post(LOGIN_URL, json=login_ok())
    http.get(USER_URL, body=requests.Timeout("still slow"))

    with pytest.raises(TransportError):
        client.get_user()
    assert len(http.calls) == 3


def test_login_error_during_relogin_is_not_retried(client, http):
    client.state.set_credentials("stale", "acc")
    http.get(USER_URL, status=401, body="expired")
    http.post(LOGIN_URL, json=login_bad_credentials())

    with pytest.raises(BadCredentialsError):
        client.get_user()
    assert len(http.calls) == 2
    # the rejected pair is not reused by the next call
    assert client.state.credentials() == (None, None)


def test_next_call_after_failed_relogin_logs_in_first(client, http):
    client.state.set_credentials("stale", "acc")
    http.get(USER_URL, status=401, body="expired")
    http.post(LOGIN_URL, json=login_bad_credentials())
    http.post(LOGIN_URL, json=login_ok(token="fresh"))
    http.get(USER_URL, json={"status": 0})

    with pytest.raises(BadCredentialsError):
        client.get_user()
    client.get_user()

    assert methods(http)[2:] == [("POST", LOGIN_URL), ("GET", USER_URL)]
    assert http.calls[3].request.headers["Authorization"] == "Bearer fresh"


def test_body_shape_failure_triggers_retry(client, http):
    client.state.set_credentials("tok", "acc")
    http.get(CONNECTIONS_URL, json={"status": 0, "data": {"unexpected": True}})
    http.post(LOGIN_URL, json=login_ok())
    http.get(CONNECTIONS_URL, json=connections_ok(connection_dict()))

    connections = client.get_connections()

    assert [c.patient_id for c in connections] == ["p-1"]
    assert len(http.calls) == 3


def test_requests_after_redirect_use_the_regional_base(client, http):
    eu = "https://api-eu.libreview.io"
    http.post(LOGIN_URL, json=login_redirect("eu"))
    http.post(eu + "/llu/auth/login", json=login_ok())
    http.get(eu + "/llu/connections", json=connections_ok(connection_dict()))
    http.get(graph_url(base=eu), json=graph_ok())

    client.read()

    assert [url for _, url in methods(http)[2:]] == [eu + "/llu/connections", graph_url(base=eu)]


def test_country_config_is_unauthenticated(client, http):
    http.get(COUNTRY_URL + "?country=DE&version=4.16.0", json={"status": 0, "data": {"lslApi": "x"}})

    body = client.get_country_config("DE")

    headers = http.calls[0].request.headers
    assert "Authorization" not in headers
    assert "Account-Id" not in headers
    assert body["data"]["lslApi"] == "x"
    assert client.state.token is None


def test_country_config_error_is_not_retried(client, http):
    http.get(COUNTRY_URL + "?country=DE&version=4.12.0", status=404, body="missing")
    with pytest.raises(InvalidResponseError):
        client.get_country_config("DE", version="4.12.0")
    assert len(http.calls) == 1


def test_logbook_and_notification_paths(client, http):
    client.state.set_credentials("tok", "acc")
    http.get(BASE + "/llu/connections/p-7/logbook", json={"status": 0, "data": []})
    http.get(BASE + "/llu/notifications/settings/c-7", json={"status": 0, "data": {}})

    client.get_logbook("p-7")
    client.get_notification_settings("c-7")

    assert len(http.calls) == 2


# -----------------------------
# read pipeline
# -----------------------------

def test_read_maps_current_and_history(client, http):
    history = [
        glucose_dict(100, "1/9/2026 10:30:01 AM", arrow=None),
        glucose_dict(110, "1/9/2026 10:35:01 AM", arrow=None),
    ]
    http.post(LOGIN_URL, json=login_ok())
    http.get(CONNECTIONS_URL, json=connections_ok(connection_dict("p-1")))
    http.get(graph_url("p-1"), json=graph_ok(glucose_dict(120, "1/9/2026 10:41:01 AM", arrow=4, high=True), history))

    result = client.read()

    assert result.current.value == 120
    assert result.current.is_high is True
    assert result.current.trend is TrendType.FORTY_FIVE_UP
    assert result.current.timestamp.hour == 10
    assert [r.value for r in result.history] == [100, 110]
    assert all(r.trend is TrendType.FLAT for r in result.history)


def test_connection_id_is_resolved_once(client, http):
    http.post(LOGIN_URL, json=login_ok())
    http.get(CONNECTIONS_URL, json=connections_ok(connection_dict("p-1"), connection_dict("p-2", "Jane", "Roe")))
    http.get(graph_url("p-1"), json=graph_ok())
    http.get(graph_url("p-1"), json=graph_ok())

    client.read()
    client.read()

    urls = [url for _, url in methods(http)]
    assert urls.count(CONNECTIONS_URL) == 1
    assert urls.count(graph_url("p-1")) == 2
    assert client.state.connection_id == "p-1"


def test_connection_name_from_config(config, http):
    config.connection_name = "jane roe"
    c = LibreLinkUpClient(config)
    http.post(LOGIN_URL, json=login_ok())
    http.get(CONNECTIONS_URL, json=connections_ok(connection_dict("p-1"), connection_dict("p-2", "Jane", "Roe")))
    http.get(graph_url("p-2"), json=graph_ok())

    c.read_raw()

    assert http.calls[2].request.url == graph_url("p-2")


def test_no_connections(client, http):
    http.post(LOGIN_URL, json=login_ok())
    http.get(CONNECTIONS_URL, json=connections_ok())
    with pytest.raises(NoConnectionsError):
        client.read()
    assert client.state.connection_id is None


def test_read_raw_keeps_wire_records(client, http):
    http.post(LOGIN_URL, json=login_ok())
    http.get(CONNECTIONS_URL, json=connections_ok(connection_dict()))
    http.get(graph_url(), json=graph_ok(history=[glucose_dict(99, arrow=None)]))

    raw = client.read_raw()

    assert raw.connection["patientId"] == "p-1"
    assert raw.active_sensors[0]["sensor"]["sn"] == "SN1"
    assert raw.graph_data[0].trend_arrow is None
    assert raw.current.trend_arrow == 3
