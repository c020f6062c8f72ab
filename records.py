# records.py
# Plain records handed between storage, the adherence engine and the UI.
# Everything user-typed passes through the new_* constructors below; the
# engine only ever sees records built here.

import re
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from config import FREQUENCIES, MEASUREMENT_KINDS, MEMBER_COLORS

_HM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


class ValidationError(ValueError):
    """Rejected user input. ``message_key`` indexes the string tables."""

    def __init__(self, message_key: str, detail: str = ""):
        super().__init__(detail or message_key)
        self.message_key = message_key
        self.detail = detail


def parse_hm(text: str) -> str:
    """Normalise a 24-hour clock time to ``HH:MM``."""
    m = _HM_RE.match(text or "")
    if not m:
        raise ValidationError("invalidTime", f"not a HH:MM time: {text!r}")
    h, mi = int(m.group(1)), int(m.group(2))
    if h > 23 or mi > 59:
        raise ValidationError("invalidTime", f"out of range: {text!r}")
    return f"{h:02d}:{mi:02d}"


def _new_id() -> str:
    return uuid.uuid4().hex


# -------------------------
# Medicine
# -------------------------
@dataclass
class Medicine:
    id: str
    name: str
    dosage: str
    type: str
    times: List[str]
    frequency: str = "daily"
    # "YYYY-MM-DD HH:MM" -> taken; keys come from adherence.dose_key only
    taken: Dict[str, bool] = field(default_factory=dict)
    created_at: str = ""

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict) -> "Medicine":
        times = d.get("times") or []
        if not isinstance(times, list):
            raise ValueError("times must be a list")
        taken = d.get("taken") or {}
        if not isinstance(taken, dict):
            raise ValueError("taken must be a mapping")
        return cls(
            id=str(d["id"]),
            name=str(d["name"]),
            dosage=str(d.get("dosage") or ""),
            type=str(d.get("type") or "other"),
            times=[str(t) for t in times],
            frequency=str(d.get("frequency") or "daily"),
            taken={str(k): bool(v) for k, v in taken.items()},
            created_at=str(d.get("created_at") or ""),
        )


def new_medicine(name: str, dosage: str, type: str, times: Sequence[str],
                 frequency: str = "daily", now: Optional[datetime] = None) -> Medicine:
    name = (name or "").strip()
    dosage = (dosage or "").strip()
    if not name or not dosage:
        raise ValidationError("enterNameDosage")
    if not times:
        raise ValidationError("addAtLeastOneTime")
    frequency = (frequency or "daily").strip()
    if frequency not in FREQUENCIES:
        raise ValidationError("invalidFrequency", frequency)
    now = now or datetime.now()
    return Medicine(
        id=_new_id(),
        name=name,
        dosage=dosage,
        type=(type or "medicine").strip() or "medicine",
        times=[parse_hm(t) for t in times],
        frequency=frequency,
        taken={},
        created_at=now.isoformat(timespec="seconds"),
    )


# -------------------------
# Measurement
# -------------------------
@dataclass(frozen=True)
class Measurement:
    id: str
    kind: str
    timestamp: datetime
    value: Optional[float] = None
    systolic: Optional[int] = None
    diastolic: Optional[int] = None
    note: str = ""

    @property
    def display_value(self) -> str:
        if self.kind == "blood-pressure":
            return f"{self.systolic}/{self.diastolic}"
        return f"{self.value:g}"

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d

    @classmethod
    def from_dict(cls, d: Dict) -> "Measurement":
        kind = str(d["kind"])
        if kind not in MEASUREMENT_KINDS:
            raise ValueError(f"unknown measurement kind {kind!r}")
        if kind == "blood-pressure":
            return cls(id=str(d["id"]), kind=kind,
                       timestamp=datetime.fromisoformat(d["timestamp"]),
                       systolic=int(d["systolic"]), diastolic=int(d["diastolic"]),
                       note=str(d.get("note") or ""))
        return cls(id=str(d["id"]), kind=kind,
                   timestamp=datetime.fromisoformat(d["timestamp"]),
                   value=float(d["value"]), note=str(d.get("note") or ""))


def _positive_int(raw) -> int:
    try:
        v = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationError("invalidMeasurement", f"not an integer: {raw!r}")
    if v <= 0:
        raise ValidationError("invalidMeasurement", f"must be positive: {raw!r}")
    return v


def _positive_float(raw) -> float:
    try:
        v = float(str(raw).strip().replace(",", "."))
    except (TypeError, ValueError):
        raise ValidationError("invalidMeasurement", f"not a number: {raw!r}")
    if v != v or v <= 0:
        raise ValidationError("invalidMeasurement", f"must be positive: {raw!r}")
    return v


def new_measurement(kind: str, value=None, systolic=None, diastolic=None,
                    note: str = "", now: Optional[datetime] = None) -> Measurement:
    if kind not in MEASUREMENT_KINDS:
        raise ValidationError("invalidMeasurement", f"unknown kind {kind!r}")
    now = now or datetime.now()
    note = (note or "").strip()
    if kind == "blood-pressure":
        return Measurement(id=_new_id(), kind=kind, timestamp=now,
                           systolic=_positive_int(systolic),
                           diastolic=_positive_int(diastolic), note=note)
    return Measurement(id=_new_id(), kind=kind, timestamp=now,
                       value=_positive_float(value), note=note)


# -------------------------
# Family member
# -------------------------
@dataclass
class FamilyMember:
    id: str
    name: str
    relation: str
    color: str
    is_active: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict) -> "FamilyMember":
        return cls(id=str(d["id"]), name=str(d["name"]),
                   relation=str(d.get("relation") or ""),
                   color=str(d.get("color") or MEMBER_COLORS[0]),
                   is_active=bool(d.get("is_active", False)))


def new_family_member(name: str, relation: str, existing: Sequence[FamilyMember]) -> FamilyMember:
    name = (name or "").strip()
    if not name:
        raise ValidationError("enterName")
    return FamilyMember(
        id=_new_id(),
        name=name,
        relation=(relation or "").strip(),
        color=MEMBER_COLORS[len(existing) % len(MEMBER_COLORS)],
        is_active=False,
    )
