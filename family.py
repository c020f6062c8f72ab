# family.py
# Family-member profiles: one active member at a time.

from typing import List, Optional, Sequence

from applog import logger
from config import MEMBER_COLORS
from records import FamilyMember, ValidationError, new_family_member

DEFAULT_MEMBER_ID = "self"


def ensure_default(members: Sequence[FamilyMember]) -> List[FamilyMember]:
    if members:
        return list(members)
    return [FamilyMember(id=DEFAULT_MEMBER_ID, name="me", relation="self",
                         color=MEMBER_COLORS[0], is_active=True)]


def add_member(members: Sequence[FamilyMember], name: str, relation: str) -> List[FamilyMember]:
    member = new_family_member(name, relation, members)
    logger.info(f"family member added id={member.id} relation={member.relation!r}")
    return list(members) + [member]


def switch_member(members: Sequence[FamilyMember], member_id: str) -> List[FamilyMember]:
    if not any(m.id == member_id for m in members):
        raise ValidationError("unknownMember", member_id)
    return [FamilyMember(id=m.id, name=m.name, relation=m.relation, color=m.color,
                         is_active=(m.id == member_id))
            for m in members]


def active_member(members: Sequence[FamilyMember]) -> Optional[FamilyMember]:
    return next((m for m in members if m.is_active), None)


def profile_summary(medicine_count: int, streak: int, measurement_count: int) -> dict:
    return {"medicines": medicine_count, "streak": streak, "measurements": measurement_count}
