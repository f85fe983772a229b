# -*- coding: utf-8 -*-

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar
from urllib.parse import urlencode

import requests

from .config import ClientConfig
from .connections import parse_connections, resolve_connection_id
from .errors import (
    AccountLockedError,
    AdditionalActionRequiredError,
    AuthFailedError,
    BadCredentialsError,
    InvalidResponseError,
    RedirectLoopError,
    TransportError,
)
from .glucose import map_glucose_data, map_history
from .login import classify_login_response
from .logs import get_logger
from .models import (
    Connection,
    GlucoseItem,
    GlucoseMeasurement,
    LoginBadCredentials,
    LoginComplete,
    LoginLocked,
    LoginRedirect,
    LoginStepRequired,
    RawReadResult,
    ReadResult,
)
from .polling import PollingEngine, PollingHandle, Sink
from .regions import GLOBAL_BASE_URL, region_to_base_url
from .session import SessionState
from .utils import sha256_hex

T = TypeVar("T")

LOGIN_ENDPOINT = "/llu/auth/login"
CONNECTIONS_ENDPOINT = "/llu/connections"
COUNTRY_CONFIG_ENDPOINT = "/llu/config/country"
NOTIFICATIONS_SETTINGS_ENDPOINT = "/llu/notifications/settings"
USER_ENDPOINT = "/user"
ACCOUNT_ENDPOINT = "/account"

# The service redirects at most once in practice.
MAX_LOGIN_REDIRECTS = 3

USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU OS 17_4.1 like Mac OS X) AppleWebKit/536.26 "
    "(KHTML, like Gecko) Version/17.4.1 Mobile/10A5355d Safari/8536.25"
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
    "Accept-Encoding": "gzip",
    "Accept-Language": "en-US",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Content-Type": "application/json;charset=UTF-8",
    "product": "llu.ios",
}


def _parse_graph(body: Dict[str, Any]) -> RawReadResult:
    data = body["data"]
    conn = data["connection"]
    return RawReadResult(
        connection=conn,
        active_sensors=list(data.get("activeSensors") or []),
        graph_data=[GlucoseItem.from_dict(it) for it in (data.get("graphData") or [])],
        current=GlucoseMeasurement.from_dict(conn["glucoseMeasurement"]),
    )


class LibreLinkUpClient:
    """
    Client for the LibreLinkUp follower API.

    Logs in lazily on the first authenticated call, follows regional
    redirects, and re-logs in once whenever an authenticated request fails.
    One instance owns one SessionState; read_averaged() polls on a separate
    instance built from a copy of the configuration.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not config.username or not config.username.strip():
            raise AuthFailedError("username must not be empty")
        if not config.password:
            raise AuthFailedError("password must not be empty")

        self.config = config
        self.state = SessionState(region_to_base_url(config.region))
        self.session = session if session is not None else requests.Session()
        self.log = logger or get_logger()

    @classmethod
    def simple(cls, username: str, password: str, region: Optional[str] = None) -> "LibreLinkUpClient":
        return cls(ClientConfig(username=username, password=password, region=region))

    def close(self):
        self.session.close()

    def _headers(self) -> Dict[str, str]:
        h = dict(DEFAULT_HEADERS)
        h["version"] = self.config.version
        return h

    # -----------------------------
    # HTTP plumbing
    # -----------------------------

    def _send(self, method: str, url: str, headers: Dict[str, str], payload: Optional[Dict[str, Any]] = None):
        self.log.debug("[http] %s %s", method, url)
        try:
            if method == "POST":
                r = self.session.post(
                    url,
                    headers=headers,
                    json=payload,
                    timeout=self.config.timeout_s,
                    verify=self.config.verify_tls,
                )
            else:
                r = self.session.get(
                    url,
                    headers=headers,
                    timeout=self.config.timeout_s,
                    verify=self.config.verify_tls,
                )
        except requests.RequestException as ex:
            raise TransportError(f"{method} {url} failed: {ex}") from ex

        self.log.debug("[http] status=%s len=%s", r.status_code, len(r.content))
        return r

    def _decode(self, r, label: str) -> Any:
        if not r.ok:
            raise InvalidResponseError(
                f"request to '{label}' failed - HTTP {r.status_code}: {r.text[:300]}",
                status_code=r.status_code,
                body=r.text,
            )
        try:
            return r.json()
        except ValueError as ex:
            raise InvalidResponseError(
                f"failed to parse JSON for '{label}': {ex}",
                status_code=r.status_code,
                body=r.text,
            ) from ex

    def _convert(self, body: Any, label: str, parse: Optional[Callable[[Any], T]]):
        if parse is None:
            return body
        try:
            return parse(body)
        except (KeyError, IndexError, TypeError, ValueError) as ex:
            raise InvalidResponseError(f"unexpected body shape for '{label}': {ex!r}") from ex

    # -----------------------------
    # Login
    # -----------------------------

    def login(self) -> LoginComplete:
        """
        Logs in against the current base URL and stores token + account id.

        Raises AccountLockedError, BadCredentialsError or
        AdditionalActionRequiredError for the fatal outcomes; a redirect
        switches the base URL and logs in again.
        """
        return self._login(hops=0)

    def _login(self, hops: int) -> LoginComplete:
        url = self.state.base_url + LOGIN_ENDPOINT
        payload = {"email": self.config.username, "password": self.config.password}

        r = self._send("POST", url, self._headers(), payload)
        body = self._decode(r, LOGIN_ENDPOINT)
        outcome = classify_login_response(body)

        if isinstance(outcome, LoginLocked):
            self.log.error("[auth] account locked for %ss", outcome.lockout_seconds)
            raise AccountLockedError(outcome.lockout_seconds)

        if isinstance(outcome, LoginBadCredentials):
            raise BadCredentialsError()

        if isinstance(outcome, LoginStepRequired):
            raise AdditionalActionRequiredError(outcome.component_name)

        if isinstance(outcome, LoginRedirect):
            if hops >= MAX_LOGIN_REDIRECTS:
                raise RedirectLoopError(hops, outcome.region)
            new_base = region_to_base_url(outcome.region)
            self.log.info("[auth] redirect requested: region=%s -> api_base=%s", outcome.region, new_base)
            self.state.base_url = new_base
            return self._login(hops + 1)

        self.state.set_credentials(outcome.token, outcome.account_id)
        self.log.info("[auth] login ok (api_base=%s)", self.state.base_url)
        self.log.debug("[auth] token (short): %s…", outcome.token[:18])
        return outcome

    # -----------------------------
    # Requests
    # -----------------------------

    def _try_get(self, path: str, parse: Optional[Callable[[Any], T]]):
        url = self.state.base_url + path
        token, account_id = self.state.credentials()

        h = self._headers()
        if token:
            h["Authorization"] = f"Bearer {token}"
        if account_id:
            h["Account-Id"] = sha256_hex(account_id)

        r = self._send("GET", url, h)
        return self._convert(self._decode(r, path), path, parse)

    def authenticated_get(self, path: str, parse: Optional[Callable[[Any], T]] = None):
        if self.state.token is None:
            self.login()

        try:
            return self._try_get(path, parse)
        except (TransportError, InvalidResponseError) as ex:
            self.log.warning("[auth] %s failed (%s) -> relogin and retry once", path, ex)
            self.state.clear_credentials()
            self.login()
            return self._try_get(path, parse)

    def unauthenticated_get(self, url: str, label: str, parse: Optional[Callable[[Any], T]] = None):
        r = self._send("GET", url, self._headers())
        return self._convert(self._decode(r, label), label, parse)

    # -----------------------------
    # Endpoints
    # -----------------------------

    def get_connections(self) -> List[Connection]:
        return self.authenticated_get(CONNECTIONS_ENDPOINT, parse_connections)

    def get_user(self) -> Dict[str, Any]:
        return self.authenticated_get(USER_ENDPOINT)

    def get_account(self) -> Dict[str, Any]:
        return self.authenticated_get(ACCOUNT_ENDPOINT)

    def get_logbook(self, patient_id: str) -> Dict[str, Any]:
        return self.authenticated_get(f"{CONNECTIONS_ENDPOINT}/{patient_id}/logbook")

    def get_notification_settings(self, connection_id: str) -> Dict[str, Any]:
        return self.authenticated_get(f"{NOTIFICATIONS_SETTINGS_ENDPOINT}/{connection_id}")

    def get_country_config(self, country: str, version: Optional[str] = None) -> Dict[str, Any]:
        query = urlencode({"country": country, "version": version or self.config.version})
        url = f"{GLOBAL_BASE_URL}{COUNTRY_CONFIG_ENDPOINT}?{query}"
        return self.unauthenticated_get(url, COUNTRY_CONFIG_ENDPOINT)

    def connection_id(self) -> str:
        """Patient id to read from; resolved on first use and then kept."""
        cached = self.state.connection_id
        if cached is not None:
            return cached

        connections = self.get_connections()
        cid = resolve_connection_id(
            connections,
            connection_name=self.config.connection_name,
            connection_function=self.config.connection_function,
        )
        self.log.debug("[conn] resolved connection id %s (of %d)", cid, len(connections))
        self.state.connection_id = cid
        return cid

    def read_raw(self) -> RawReadResult:
        path = f"{CONNECTIONS_ENDPOINT}/{self.connection_id()}/graph"
        return self.authenticated_get(path, _parse_graph)

    def read(self) -> ReadResult:
        raw = self.read_raw()
        return ReadResult(
            current=map_glucose_data(raw.current),
            history=map_history(raw.graph_data),
        )

    def read_averaged(self, target_count: int, sink: Sink, interval_s: float = 15.0) -> PollingHandle:
        """
        Starts a background PollingEngine on a fresh client and returns its
        handle. sink(average, window, history) is called every time
        target_count distinct readings have been collected.
        """
        poller = type(self)(self.config.copy(), logger=self.log)
        engine = PollingEngine(
            poller.read,
            target_count,
            interval_s,
            sink,
            logger=self.log,
            on_stop=poller.close,
        )
        return engine.start()
