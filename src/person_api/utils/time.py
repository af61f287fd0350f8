"""Time utilities."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def after_seconds(seconds: int) -> datetime:
    """Absolute time `seconds` from now."""
    return utc_now() + timedelta(seconds=seconds)


def seconds_until(moment: datetime) -> int:
    """Whole seconds from now until `moment`, rounded up, never negative."""
    return max(0, math.ceil((moment - utc_now()).total_seconds()))
