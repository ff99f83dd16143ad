from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.org_assignments import OrgUserAssignment
from app.schemas.org_assignments import OrgAssignmentUpsert
from app.services.org_scope_service import get_primary_org_assignment

_ID_FIELDS = ("division_id", "department_id", "location_id")


class EmptyAssignmentError(ValueError):
    """Raised when an upsert carries no division, department or location."""


def upsert_primary_org_assignment(
    db: Session,
    *,
    user_key: str,
    data: OrgAssignmentUpsert,
    created_by_user_key: str | None = None,
) -> tuple[OrgUserAssignment, bool]:
    """
    Create or update the user's first assignment row.

    Extra rows for the same user are left alone; reads aggregate them but
    writes only touch the first one. Returns (row, created).
    """
    patch = {k: v for k, v in data.model_dump(exclude_unset=True).items() if k in _ID_FIELDS}
    if not any(patch.get(k) for k in _ID_FIELDS):
        raise EmptyAssignmentError("Select at least one division, department, or location.")

    existing = get_primary_org_assignment(db, user_key)
    if existing:
        for k, v in patch.items():
            setattr(existing, k, v)
        db.commit()
        db.refresh(existing)
        return existing, False

    obj = OrgUserAssignment(
        user_key=user_key,
        division_id=patch.get("division_id"),
        department_id=patch.get("department_id"),
        location_id=patch.get("location_id"),
        created_by_user_key=created_by_user_key,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj, True
