"""Pure SLA rules: deadline arithmetic and status classification."""
from __future__ import annotations

import math
from datetime import datetime, timedelta

from caseflow.domain import SLAStatus

AT_RISK_WINDOW = timedelta(hours=24)


def deadline_from(start: datetime, total_hours: float) -> datetime:
    return start + timedelta(hours=total_hours or 0)


def classify(now: datetime, deadline: datetime | None, *, at_risk_window: timedelta = AT_RISK_WINDOW) -> SLAStatus:
    """Classify a deadline relative to ``now``.

    ``not_set`` without a deadline, ``breached`` once ``now`` is past it,
    ``at_risk`` inside the warning window, ``on_time`` otherwise.
    """

    if deadline is None:
        return SLAStatus.NOT_SET
    if now > deadline:
        return SLAStatus.BREACHED
    if deadline - now <= at_risk_window:
        return SLAStatus.AT_RISK
    return SLAStatus.ON_TIME


def hours_remaining(now: datetime, deadline: datetime | None) -> int:
    if deadline is None or now >= deadline:
        return 0
    return round((deadline - now).total_seconds() / 3600)


def estimated_resolution_label(total_hours: float) -> str:
    days = max(1, math.ceil((total_hours or 0) / 24))
    return f"{days} business day{'s' if days > 1 else ''}"
