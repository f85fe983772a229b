# -*- coding: utf-8 -*-
"""
Classification of /llu/auth/login responses.

The body carries no discriminator, so shapes are matched in a fixed order and
the first match wins:

  1. lockout   {"status":..., "data":{"code":..., "data":{"lockout":300, ...}}}
  2. status 2  bad credentials
  3. status 4  additional step required (MFA, ToU, email verification)
  4. redirect  {"status":0, "data":{"redirect":true, "region":"de"}}
  5. complete  {"status":0, "data":{"user":{"id":...}, "authTicket":{"token":...}}}
"""

import json
from typing import Any, Dict, Union

from .errors import InvalidResponseError
from .models import (
    LoginBadCredentials,
    LoginComplete,
    LoginLocked,
    LoginRedirect,
    LoginStepRequired,
)

STATUS_BAD_CREDENTIALS = 2
STATUS_STEP_REQUIRED = 4

LoginOutcome = Union[LoginComplete, LoginRedirect, LoginStepRequired, LoginLocked, LoginBadCredentials]


def _body_short(body: Dict[str, Any]) -> str:
    return json.dumps(body, ensure_ascii=False)[:300]


def _lockout_int(lock: Dict[str, Any], key: str, body: Dict[str, Any]) -> int:
    try:
        return int(lock.get(key) or 0)
    except (TypeError, ValueError):
        raise InvalidResponseError(f"login lockout has a non-numeric {key}: {_body_short(body)}")


def _expires(ticket: Dict[str, Any]) -> int:
    # informational only, a bad value must not fail an otherwise valid login
    try:
        return int(ticket.get("expires", 0) or 0)
    except (TypeError, ValueError):
        return 0


def classify_login_response(body: Any) -> LoginOutcome:
    if not isinstance(body, dict):
        raise InvalidResponseError(f"login response is not a JSON object: {body!r:.200}")

    try:
        status = int(body.get("status", -1))
    except (TypeError, ValueError):
        raise InvalidResponseError(f"login response has a non-numeric status: {_body_short(body)}")

    d = body.get("data")
    if not isinstance(d, dict):
        d = {}

    lock = d.get("data")
    if isinstance(lock, dict) and "lockout" in lock:
        return LoginLocked(
            lockout_seconds=_lockout_int(lock, "lockout", body),
            failures=_lockout_int(lock, "failures", body),
            interval=_lockout_int(lock, "interval", body),
        )

    if status == STATUS_BAD_CREDENTIALS:
        return LoginBadCredentials(status=status)

    if status == STATUS_STEP_REQUIRED:
        step = d.get("step") or {}
        component = step.get("componentName") if isinstance(step, dict) else None
        return LoginStepRequired(component_name=str(component or "unknown"))

    if d.get("redirect") is True:
        return LoginRedirect(region=str(d.get("region", "") or "").strip())

    user = d.get("user") or {}
    ticket = d.get("authTicket") or {}
    user_id = str(user.get("id", "") or "") if isinstance(user, dict) else ""
    token = str(ticket.get("token", "") or "") if isinstance(ticket, dict) else ""

    if not user_id or not token:
        err = body.get("error") or body.get("message") or body.get("reason") or ""
        raise InvalidResponseError(
            f"login response missing user id/token (status={status})"
            + (f" error={err!r}" if err else "")
            + f" body={_body_short(body)}"
        )

    return LoginComplete(
        token=token,
        account_id=user_id,
        expires=_expires(ticket),
        country=str(user.get("country", "") or ""),
    )
