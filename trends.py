# trends.py
# Read-only views over the measurement log for the measurements and
# statistics screens.

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from adherence import day_label, round_half_up
from records import Measurement


def for_kind(measurements: Sequence[Measurement], kind: str) -> List[Measurement]:
    """Measurements of one kind, newest first."""
    return sorted((m for m in measurements if m.kind == kind),
                  key=lambda m: m.timestamp, reverse=True)


def latest(measurements: Sequence[Measurement], kind: str) -> Optional[Measurement]:
    items = for_kind(measurements, kind)
    return items[0] if items else None


def average(measurements: Sequence[Measurement], kind: str) -> Optional[str]:
    items = for_kind(measurements, kind)
    if not items:
        return None
    n = len(items)
    if kind == "blood-pressure":
        sys_avg = round_half_up(sum(m.systolic or 0 for m in items) / n)
        dia_avg = round_half_up(sum(m.diastolic or 0 for m in items) / n)
        return f"{sys_avg}/{dia_avg}"
    return f"{sum(m.value or 0.0 for m in items) / n:.1f}"


def chart_series(measurements: Sequence[Measurement], kind: str, limit: int = 7) -> List[Dict]:
    items = list(reversed(for_kind(measurements, kind)))[-limit:]
    out = []
    for m in items:
        point = {"date": day_label(m.timestamp.date())}
        if kind == "blood-pressure":
            point["systolic"] = m.systolic
            point["diastolic"] = m.diastolic
        else:
            point["value"] = m.value
        out.append(point)
    return out


def relative_day(ts: datetime, now: datetime) -> str:
    """'today', 'yesterday' or d/m/yyyy; the first two are string-table keys."""
    if ts.date() == now.date():
        return "today"
    if ts.date() == (now - timedelta(days=1)).date():
        return "yesterday"
    return f"{ts.day}/{ts.month}/{ts.year}"
