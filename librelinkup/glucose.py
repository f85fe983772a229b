# -*- coding: utf-8 -*-

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from .logs import get_logger
from .models import (
    DEFAULT_TREND_INDEX,
    TREND_MAP,
    GlucoseRecord,
    Reading,
    TrendType,
)
from .utils import parse_libreview_ts, round_half_up

log = get_logger()


def get_trend(trend_arrow: Optional[int]) -> TrendType:
    if trend_arrow is None or not 0 <= trend_arrow < len(TREND_MAP):
        return TrendType.FLAT
    return TREND_MAP[trend_arrow]


def trend_index(trend: TrendType) -> Optional[int]:
    try:
        return TREND_MAP.index(trend)
    except ValueError:
        return None


def parse_factory_timestamp(ts: str) -> datetime:
    """FactoryTimestamp is UTC. Unparseable values become "now"."""
    dt = parse_libreview_ts(ts, timezone.utc)
    if dt is None:
        log.debug("[map] unparseable FactoryTimestamp %r, using now", ts)
        return datetime.now(timezone.utc)
    return dt


def map_glucose_data(item: GlucoseRecord) -> Reading:
    return Reading(
        value=item.value,
        is_high=item.is_high,
        is_low=item.is_low,
        trend=get_trend(item.trend_index),
        timestamp=parse_factory_timestamp(item.factory_timestamp),
    )


def map_history(items: Iterable[GlucoseRecord]) -> List[Reading]:
    return [map_glucose_data(it) for it in items]


def average_readings(window: Sequence[Reading], current: Reading) -> Reading:
    """
    Averages value and trend over the window. High/low flags and the
    timestamp are taken from the current reading.
    """
    if not window:
        raise ValueError("cannot average an empty window")

    avg_value = sum(r.value for r in window) / len(window)

    indices = [i for i in (trend_index(r.trend) for r in window) if i is not None]
    if indices:
        avg_idx = round_half_up(sum(indices) / len(indices))
    else:
        avg_idx = DEFAULT_TREND_INDEX

    trend = TREND_MAP[avg_idx] if 0 <= avg_idx < len(TREND_MAP) else TREND_MAP[DEFAULT_TREND_INDEX]

    return Reading(
        value=float(round_half_up(avg_value)),
        is_high=current.is_high,
        is_low=current.is_low,
        trend=trend,
        timestamp=current.timestamp,
    )
