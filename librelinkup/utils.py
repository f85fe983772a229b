# -*- coding: utf-8 -*-

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Optional


LIBREVIEW_TS_FORMAT = "%m/%d/%Y %I:%M:%S %p"


def sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def json_dumps_compact(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def now_ts(tz) -> datetime:
    return datetime.now(tz) if tz else datetime.now()


def iso_now(tz) -> str:
    return now_ts(tz).isoformat()


def parse_libreview_ts(ts: str, tz=timezone.utc) -> Optional[datetime]:
    # Example: "1/9/2026 10:41:01 AM"
    if not ts:
        return None
    try:
        dt = datetime.strptime(ts.strip(), LIBREVIEW_TS_FORMAT)
    except ValueError:
        return None
    return dt.replace(tzinfo=tz) if tz else dt


def round_half_up(x: float) -> int:
    # round() would round half to even; readings and trend indices are never negative
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)
