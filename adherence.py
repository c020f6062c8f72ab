# adherence.py
# Adherence engine: pure functions from (medicine catalog, reference
# instant) to the views the screens and the alert monitor display.
# No hidden state; day keys are built here and nowhere else.

import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Sequence, Union

from config import DUE_SOON_MINUTES, OVERDUE_CRITICAL_MINUTES, STREAK_MAX_DAYS
from records import Medicine

DayLike = Union[date, datetime, str]


class DoseStatus(str, Enum):
    TAKEN = "taken"
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class DoseInstance:
    medicine: Medicine
    time: str
    scheduled: datetime
    status: DoseStatus


@dataclass(frozen=True)
class OverdueDose:
    medicine: Medicine
    time: str
    minutes_late: int


@dataclass(frozen=True)
class DayAdherence:
    day: date
    label: str
    percentage: int


# -------------------------
# Day identity
# -------------------------
def day_key(day: DayLike) -> str:
    """Canonical ISO ``YYYY-MM-DD`` key; locale and timezone independent."""
    if isinstance(day, str):
        return date.fromisoformat(day).isoformat()
    if isinstance(day, datetime):
        return day.date().isoformat()
    return day.isoformat()


def dose_key(day: DayLike, hm: str) -> str:
    return f"{day_key(day)} {hm}"


def day_label(day: date) -> str:
    return f"{day.day}/{day.month}"


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part * 100.0 / whole)


# -------------------------
# Single dose-slot
# -------------------------
def scheduled_at(hm: str, ref: datetime) -> datetime:
    h, m = map(int, hm.split(":"))
    return ref.replace(hour=h, minute=m, second=0, microsecond=0)


def is_taken(medicine: Medicine, day: DayLike, hm: str) -> bool:
    return bool(medicine.taken.get(dose_key(day, hm), False))


def minutes_late(hm: str, ref: datetime) -> int:
    """Whole minutes since the slot was due (negative while still ahead)."""
    return int((ref - scheduled_at(hm, ref)).total_seconds() // 60)


def dose_status(medicine: Medicine, hm: str, ref: datetime) -> DoseStatus:
    if is_taken(medicine, ref, hm):
        return DoseStatus.TAKEN
    delta = (ref - scheduled_at(hm, ref)).total_seconds() / 60.0
    if delta >= 0:
        return DoseStatus.OVERDUE
    if delta > -DUE_SOON_MINUTES:
        return DoseStatus.DUE_SOON
    return DoseStatus.UPCOMING


def is_critical(medicine: Medicine, hm: str, ref: datetime,
                threshold_minutes: int = OVERDUE_CRITICAL_MINUTES) -> bool:
    return not is_taken(medicine, ref, hm) and minutes_late(hm, ref) >= threshold_minutes


def mark_taken(medicine: Medicine, hm: str, ref: datetime) -> Medicine:
    """
    Return a copy of ``medicine`` with today's ``hm`` slot marked taken.
    Marking twice is a no-op. There is no un-take.
    """
    key = dose_key(ref, hm)
    if medicine.taken.get(key):
        return medicine
    taken = dict(medicine.taken)
    taken[key] = True
    return replace(medicine, taken=taken)


# -------------------------
# Catalog views
# -------------------------
def today_schedule(medicines: Sequence[Medicine], ref: datetime) -> List[DoseInstance]:
    # frequency is informational: every listed time is due every day
    return [
        DoseInstance(medicine=med, time=hm, scheduled=scheduled_at(hm, ref),
                     status=dose_status(med, hm, ref))
        for med in medicines
        for hm in med.times
    ]


def overdue_critical(medicines: Sequence[Medicine], ref: datetime,
                     threshold_minutes: int = OVERDUE_CRITICAL_MINUTES) -> List[OverdueDose]:
    """Untaken slots at least ``threshold_minutes`` late, in catalog x time order."""
    out = []
    for med in medicines:
        for hm in med.times:
            if is_taken(med, ref, hm):
                continue
            late = minutes_late(hm, ref)
            if late >= threshold_minutes:
                out.append(OverdueDose(medicine=med, time=hm, minutes_late=late))
    return out


def most_late_first(overdue: Sequence[OverdueDose]) -> List[OverdueDose]:
    return sorted(overdue, key=lambda o: o.minutes_late, reverse=True)


def daily_dose_count(medicines: Sequence[Medicine]) -> int:
    return sum(len(med.times) for med in medicines)


def _completed_count(medicines: Sequence[Medicine], day: DayLike) -> int:
    return sum(1 for med in medicines for hm in med.times if is_taken(med, day, hm))


def day_completion(medicines: Sequence[Medicine], day: DayLike) -> int:
    return _percent(_completed_count(medicines, day), daily_dose_count(medicines))


def trailing_adherence(medicines: Sequence[Medicine], ref: DayLike,
                       window_days: int) -> List[DayAdherence]:
    """Per-day completion for the ``window_days`` days ending on ``ref``, oldest first."""
    end = date.fromisoformat(day_key(ref))
    series = []
    for i in range(window_days - 1, -1, -1):
        d = end - timedelta(days=i)
        series.append(DayAdherence(day=d, label=day_label(d),
                                   percentage=day_completion(medicines, d)))
    return series


def overall_adherence(series: Sequence[DayAdherence]) -> int:
    if not series:
        return 0
    return round_half_up(sum(s.percentage for s in series) / len(series))


def adherence_streak(medicines: Sequence[Medicine], ref: DayLike,
                     max_days: int = STREAK_MAX_DAYS) -> int:
    """Consecutive fully completed days up to ``ref``; an unfinished today is not a break."""
    total = daily_dose_count(medicines)
    if total == 0:
        return 0
    end = date.fromisoformat(day_key(ref))
    streak = 0
    for i in range(max_days):
        # counts, not the rounded percentage
        if _completed_count(medicines, end - timedelta(days=i)) == total:
            streak += 1
        elif i == 0:
            continue
        else:
            break
    return streak


def type_distribution(medicines: Sequence[Medicine]) -> Dict[str, int]:
    dist: Dict[str, int] = {}
    for med in medicines:
        dist[med.type] = dist.get(med.type, 0) + 1
    return dist
