import json
import logging
from pathlib import Path
import sys

import pytest
import responses
from responses.registries import OrderedRegistry

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from librelinkup.client import LibreLinkUpClient
from librelinkup.config import ClientConfig

BASE = "https://api.libreview.io"
LOGIN_URL = BASE + "/llu/auth/login"
CONNECTIONS_URL = BASE + "/llu/connections"


def login_ok(user_id="user-1", token="tok-1", country="DE"):
    return {
        "status": 0,
        "data": {
            "user": {"id": user_id, "firstName": "Fol", "lastName": "Lower", "country": country},
            "authTicket": {"token": token, "expires": 1900000000, "duration": 15552000000},
        },
    }


def login_redirect(region="eu"):
    return {"status": 0, "data": {"redirect": True, "region": region}}


def login_locked(lockout=300):
    return {
        "status": 429,
        "data": {"code": 60, "data": {"failures": 3, "interval": 60, "lockout": lockout}, "message": "locked"},
    }


def login_step(component="AcceptToU"):
    return {
        "status": 4,
        "data": {
            "step": {"type": "tou", "componentName": component, "props": {"email": "a@b.c"}},
            "user": {"id": "u", "accountType": "pat", "country": "DE", "uiLanguage": "de-DE"},
            "authTicket": {"token": "step-token", "expires": 0, "duration": 0},
        },
    }


def login_bad_credentials():
    return {"status": 2, "error": {"message": "notAuthenticated"}}


def connection_dict(patient_id="p-1", first="John", last="Doe"):
    return {
        "id": f"c-{patient_id}",
        "patientId": patient_id,
        "country": "DE",
        "status": 2,
        "firstName": first,
        "lastName": last,
        "targetLow": 70,
        "targetHigh": 180,
    }


def connections_ok(*connections):
    return {"status": 0, "data": list(connections), "ticket": {"token": "t"}}


def glucose_dict(value=120, ts="1/9/2026 10:41:01 AM", arrow=3, high=False, low=False):
    d = {
        "FactoryTimestamp": ts,
        "Timestamp": ts,
        "type": 1,
        "ValueInMgPerDl": value,
        "MeasurementColor": 1,
        "GlucoseUnits": 1,
        "Value": value,
        "isHigh": high,
        "isLow": low,
    }
    if arrow is not None:
        d["TrendArrow"] = arrow
    return d


def graph_ok(current=None, history=()):
    conn = connection_dict()
    conn["glucoseMeasurement"] = current or glucose_dict()
    return {
        "status": 0,
        "data": {
            "connection": conn,
            "activeSensors": [{"sensor": {"deviceId": "d", "sn": "SN1", "a": 1, "w": 60, "pt": 4}}],
            "graphData": list(history),
        },
        "ticket": {"token": "t"},
    }


def graph_url(patient_id="p-1", base=BASE):
    return f"{base}/llu/connections/{patient_id}/graph"


def methods(http):
    return [(c.request.method, c.request.url) for c in http.calls]


def sent_json(call):
    return json.loads(call.request.body)


@pytest.fixture
def http():
    """Registered responses are served strictly in registration order."""
    with responses.RequestsMock(registry=OrderedRegistry) as rsps:
        yield rsps


@pytest.fixture
def config():
    return ClientConfig(username="follower@example.com", password="secret")


@pytest.fixture
def client(config, http):
    c = LibreLinkUpClient(config)
    yield c
    c.close()


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger("librelinkup")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
