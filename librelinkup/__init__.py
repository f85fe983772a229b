# -*- coding: utf-8 -*-

from .client import LibreLinkUpClient
from .config import DEFAULT_API_VERSION, ClientConfig
from .connections import resolve_connection_id
from .errors import (
    AccountLockedError,
    AdditionalActionRequiredError,
    AuthFailedError,
    BadCredentialsError,
    ConnectionFunctionFailedError,
    ConnectionNotFoundError,
    InvalidResponseError,
    LibreLinkUpError,
    LoginError,
    NoConnectionsError,
    RedirectLoopError,
    TransportError,
)
from .glucose import average_readings, get_trend, map_glucose_data
from .models import (
    TREND_MAP,
    Connection,
    GlucoseItem,
    GlucoseMeasurement,
    RawReadResult,
    Reading,
    ReadResult,
    TrendType,
)
from .polling import AveragingWindow, PollingEngine, PollingHandle
from .regions import Region, region_to_base_url
from .session import SessionState

__version__ = "0.1.0"

__all__ = [
    "AccountLockedError",
    "AdditionalActionRequiredError",
    "AuthFailedError",
    "AveragingWindow",
    "BadCredentialsError",
    "ClientConfig",
    "Connection",
    "ConnectionFunctionFailedError",
    "ConnectionNotFoundError",
    "DEFAULT_API_VERSION",
    "GlucoseItem",
    "GlucoseMeasurement",
    "InvalidResponseError",
    "LibreLinkUpClient",
    "LibreLinkUpError",
    "LoginError",
    "NoConnectionsError",
    "PollingEngine",
    "PollingHandle",
    "RawReadResult",
    "ReadResult",
    "Reading",
    "RedirectLoopError",
    "Region",
    "SessionState",
    "TREND_MAP",
    "TransportError",
    "TrendType",
    "average_readings",
    "get_trend",
    "map_glucose_data",
    "region_to_base_url",
    "resolve_connection_id",
]
