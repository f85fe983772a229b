# -*- coding: utf-8 -*-

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol


class TrendType(str, Enum):
    SINGLE_DOWN = "SingleDown"
    FORTY_FIVE_DOWN = "FortyFiveDown"
    FLAT = "Flat"
    FORTY_FIVE_UP = "FortyFiveUp"
    SINGLE_UP = "SingleUp"
    NOT_COMPUTABLE = "NotComputable"


# Index -> trend as sent in "TrendArrow". Also used backwards (trend -> first
# matching index) when averaging, so NotComputable maps to 0.
TREND_MAP = (
    TrendType.NOT_COMPUTABLE,
    TrendType.SINGLE_DOWN,
    TrendType.FORTY_FIVE_DOWN,
    TrendType.FLAT,
    TrendType.FORTY_FIVE_UP,
    TrendType.SINGLE_UP,
    TrendType.NOT_COMPUTABLE,
)

DEFAULT_TREND_INDEX = 3


# -----------------------------
# Processed readings
# -----------------------------

@dataclass(frozen=True)
class Reading:
    value: float
    is_high: bool
    is_low: bool
    trend: TrendType
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "isHigh": self.is_high,
            "isLow": self.is_low,
            "trend": self.trend.value,
            "date": self.timestamp.isoformat(),
        }


@dataclass
class ReadResult:
    current: Reading
    history: List[Reading]


# -----------------------------
# Wire records
# -----------------------------

class GlucoseRecord(Protocol):
    """Anything that can be turned into a Reading."""

    factory_timestamp: str
    value: float
    is_high: bool
    is_low: bool

    @property
    def trend_index(self) -> Optional[int]:
        ...


@dataclass
class GlucoseItem:
    """Entry of "graphData"; TrendArrow may be missing."""

    factory_timestamp: str
    timestamp: str
    value: float
    value_in_mg_per_dl: float
    is_high: bool
    is_low: bool
    trend_arrow: Optional[int] = None
    measurement_color: Optional[int] = None

    @property
    def trend_index(self) -> Optional[int]:
        return self.trend_arrow

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GlucoseItem":
        arrow = d.get("TrendArrow")
        return cls(
            factory_timestamp=str(d["FactoryTimestamp"]),
            timestamp=str(d.get("Timestamp") or ""),
            value=float(d["Value"]),
            value_in_mg_per_dl=float(d.get("ValueInMgPerDl", d["Value"])),
            is_high=bool(d.get("isHigh", False)),
            is_low=bool(d.get("isLow", False)),
            trend_arrow=int(arrow) if arrow is not None else None,
            measurement_color=d.get("MeasurementColor"),
        )


@dataclass
class GlucoseMeasurement:
    """The connection's current "glucoseMeasurement"; TrendArrow is mandatory."""

    factory_timestamp: str
    timestamp: str
    value: float
    value_in_mg_per_dl: float
    is_high: bool
    is_low: bool
    trend_arrow: int
    measurement_color: Optional[int] = None

    @property
    def trend_index(self) -> Optional[int]:
        return self.trend_arrow

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GlucoseMeasurement":
        return cls(
            factory_timestamp=str(d["FactoryTimestamp"]),
            timestamp=str(d.get("Timestamp") or ""),
            value=float(d["Value"]),
            value_in_mg_per_dl=float(d.get("ValueInMgPerDl", d["Value"])),
            is_high=bool(d.get("isHigh", False)),
            is_low=bool(d.get("isLow", False)),
            trend_arrow=int(d["TrendArrow"]),
            measurement_color=d.get("MeasurementColor"),
        )


@dataclass
class Connection:
    """A followed patient as listed by /llu/connections."""

    patient_id: str
    first_name: str
    last_name: str
    id: str = ""
    country: str = ""
    status: int = 0
    target_low: Optional[float] = None
    target_high: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Connection":
        return cls(
            patient_id=str(d["patientId"]),
            first_name=str(d.get("firstName") or ""),
            last_name=str(d.get("lastName") or ""),
            id=str(d.get("id") or ""),
            country=str(d.get("country") or ""),
            status=int(d.get("status") or 0),
            target_low=d.get("targetLow"),
            target_high=d.get("targetHigh"),
            raw=d,
        )


@dataclass
class RawReadResult:
    connection: Dict[str, Any]
    active_sensors: List[Dict[str, Any]]
    graph_data: List[GlucoseItem]
    current: GlucoseMeasurement


# -----------------------------
# Login outcomes
# -----------------------------

@dataclass
class LoginComplete:
    token: str
    account_id: str
    expires: int = 0
    country: str = ""


@dataclass
class LoginRedirect:
    region: str


@dataclass
class LoginStepRequired:
    component_name: str


@dataclass
class LoginLocked:
    lockout_seconds: int
    failures: int = 0
    interval: int = 0


@dataclass
class LoginBadCredentials:
    status: int
