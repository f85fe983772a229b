# -*- coding: utf-8 -*-

import threading
from typing import Optional, Tuple


class SessionState:
    """
    Base URL, login token, account id and resolved connection id of one client.

    Every accessor takes the lock once and releases it before returning, so the
    lock is never held across an HTTP call. token and account_id only change
    together.
    """

    def __init__(self, base_url: str):
        self._lock = threading.Lock()
        self._base_url = base_url.rstrip("/")
        self._token: Optional[str] = None
        self._account_id: Optional[str] = None
        self._connection_id: Optional[str] = None

    @property
    def base_url(self) -> str:
        with self._lock:
            return self._base_url

    @base_url.setter
    def base_url(self, value: str) -> None:
        with self._lock:
            self._base_url = value.rstrip("/")

    @property
    def token(self) -> Optional[str]:
        with self._lock:
            return self._token

    @property
    def account_id(self) -> Optional[str]:
        with self._lock:
            return self._account_id

    def credentials(self) -> Tuple[Optional[str], Optional[str]]:
        with self._lock:
            return self._token, self._account_id

    def set_credentials(self, token: str, account_id: str) -> None:
        with self._lock:
            self._token = token
            self._account_id = account_id

    def clear_credentials(self) -> None:
        with self._lock:
            self._token = None
            self._account_id = None

    @property
    def connection_id(self) -> Optional[str]:
        with self._lock:
            return self._connection_id

    @connection_id.setter
    def connection_id(self, value: str) -> None:
        with self._lock:
            self._connection_id = value
