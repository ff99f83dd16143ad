from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.orm import Session

from app.models.org_assignments import OrgUserAssignment


@dataclass(frozen=True)
class OrgScopeIds:
    division_ids: frozenset[str] = field(default_factory=frozenset)
    department_ids: frozenset[str] = field(default_factory=frozenset)
    location_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def has_any_scope(self) -> bool:
        return bool(self.division_ids or self.department_ids or self.location_ids)

    def field_to_ids(self) -> dict[str, frozenset[str]]:
        """Non-empty categories keyed by assignment column name."""
        mapping: dict[str, frozenset[str]] = {}
        if self.division_ids:
            mapping["division_id"] = self.division_ids
        if self.department_ids:
            mapping["department_id"] = self.department_ids
        if self.location_ids:
            mapping["location_id"] = self.location_ids
        return mapping


def _clean_id(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def org_scope_ids_from_rows(rows) -> OrgScopeIds:
    """Collect distinct non-null ids per category from (division, department, location) rows."""
    division_ids: set[str] = set()
    department_ids: set[str] = set()
    location_ids: set[str] = set()
    for division_id, department_id, location_id in rows:
        division = _clean_id(division_id)
        department = _clean_id(department_id)
        location = _clean_id(location_id)
        if division:
            division_ids.add(division)
        if department:
            department_ids.add(department)
        if location:
            location_ids.add(location)
    return OrgScopeIds(
        division_ids=frozenset(division_ids),
        department_ids=frozenset(department_ids),
        location_ids=frozenset(location_ids),
    )


def resolve_org_scope_ids(db: Session, subject_key: str | None) -> OrgScopeIds:
    """
    Aggregate every assignment row of the subject into three id sets.

    Several rows per subject are expected; all of them contribute.
    """
    key = (subject_key or "").strip()
    if not key:
        return OrgScopeIds()

    rows = db.execute(
        select(
            OrgUserAssignment.division_id,
            OrgUserAssignment.department_id,
            OrgUserAssignment.location_id,
        ).where(func.lower(OrgUserAssignment.user_key) == key.lower())
    ).all()
    return org_scope_ids_from_rows(rows)


def scope_overlap_condition(scope_ids: OrgScopeIds):
    """OR of `column IN ids` for each non-empty category, or None."""
    parts = [
        getattr(OrgUserAssignment, column).in_(sorted(ids))
        for column, ids in scope_ids.field_to_ids().items()
    ]
    if not parts:
        return None
    return or_(*parts)


def assignment_overlaps_scope(db: Session, user_key: str | None, scope_ids: OrgScopeIds) -> bool:
    """True when some assignment row of `user_key` shares an id with `scope_ids`."""
    key = (user_key or "").strip()
    overlap = scope_overlap_condition(scope_ids)
    if not key or overlap is None:
        return False

    stmt = select(
        exists().where(
            and_(
                func.lower(OrgUserAssignment.user_key) == key.lower(),
                overlap,
            )
        )
    )
    return bool(db.execute(stmt).scalar())


def list_org_assignments(db: Session, user_key: str) -> list[OrgUserAssignment]:
    stmt = (
        select(OrgUserAssignment)
        .where(func.lower(OrgUserAssignment.user_key) == (user_key or "").strip().lower())
        .order_by(OrgUserAssignment.created_at.desc(), OrgUserAssignment.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def get_primary_org_assignment(db: Session, user_key: str) -> OrgUserAssignment | None:
    """
    First assignment row for the user (lowest id).

    Write paths only ever touch this row even when more rows exist.
    """
    stmt = (
        select(OrgUserAssignment)
        .where(func.lower(OrgUserAssignment.user_key) == (user_key or "").strip().lower())
        .order_by(OrgUserAssignment.id.asc())
        .limit(1)
    )
    return db.execute(stmt).scalars().first()
