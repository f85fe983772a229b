# -*- coding: utf-8 -*-

from typing import Optional


class LibreLinkUpError(Exception):
    """Base class for everything the client raises."""


# -----------------------------
# Transport / response shape
# -----------------------------

class TransportError(LibreLinkUpError):
    pass


class InvalidResponseError(LibreLinkUpError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(f"Invalid API response: {message}")
        self.status_code = status_code
        self.body = body


# -----------------------------
# Login
# -----------------------------

class AuthFailedError(LibreLinkUpError):
    def __init__(self, reason: str):
        super().__init__(f"Authentication failed: {reason}")
        self.reason = reason


class LoginError(LibreLinkUpError):
    """Fatal login outcome. Never retried by the request executor."""


class BadCredentialsError(LoginError):
    def __init__(self):
        super().__init__(
            "Bad credentials. Please ensure that you have entered the credentials of your "
            "LibreLinkUp account (and not of your LibreLink account)."
        )


class AccountLockedError(LoginError):
    def __init__(self, lockout_seconds: int):
        super().__init__(
            "Account temporarily locked due to multiple failed login attempts. "
            f"Please wait {lockout_seconds} seconds and try again."
        )
        self.lockout_seconds = lockout_seconds


class AdditionalActionRequiredError(LoginError):
    def __init__(self, component_name: str):
        super().__init__(
            f"Additional action required for your account: {component_name}. "
            "Please login via app and perform required steps and try again."
        )
        self.component_name = component_name


class RedirectLoopError(LoginError):
    def __init__(self, hops: int, region: str):
        super().__init__(f"Login redirected {hops} times, giving up (last region={region!r})")
        self.hops = hops
        self.region = region


# -----------------------------
# Connection resolution
# -----------------------------

class NoConnectionsError(LibreLinkUpError):
    def __init__(self):
        super().__init__(
            "Your account does not follow any patients. Please start following and try again."
        )


class ConnectionNotFoundError(LibreLinkUpError):
    def __init__(self, name: str):
        super().__init__(f"Unable to identify connection by given name '{name}'")
        self.name = name


class ConnectionFunctionFailedError(LibreLinkUpError):
    def __init__(self):
        super().__init__("Unable to identify connection by given function")
