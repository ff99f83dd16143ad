from __future__ import annotations

import math
import re

from sqlalchemy import and_, exists, false, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.employees import Employee
from app.models.org_assignments import OrgUserAssignment
from app.models.positions import Position
from app.schemas.employees import EmployeeUpdate
from app.services.org_scope_service import scope_overlap_condition
from app.services.scope_filter import ScopeFilter, ScopeFilterKind


class DuplicateError(Exception):
    """Raised when a unique constraint is violated (e.g., user_email unique)."""


_SORT_COLUMNS = {
    "userEmail": Employee.user_email,
    "firstName": Employee.first_name,
    "lastName": Employee.last_name,
    "preferredName": Employee.preferred_name,
    "positionName": Position.name,
    "jobLevel": Employee.job_level,
    "hireDate": Employee.hire_date,
    "phone": Employee.phone,
    "city": Employee.city,
    "state": Employee.state,
    "country": Employee.country,
    "createdAt": Employee.created_at,
    "updatedAt": Employee.updated_at,
}


def scope_filter_clause(scope_filter: ScopeFilter):
    """
    Render a ScopeFilter against hrm_employees.

    Returns None for an unrestricted filter so callers can skip the WHERE.
    """
    if scope_filter.is_unrestricted:
        return None
    if scope_filter.excludes_all or not scope_filter.caller_key:
        return false()

    own = func.lower(Employee.user_email) == scope_filter.caller_key
    if scope_filter.kind is ScopeFilterKind.OWN:
        return own

    overlap = scope_overlap_condition(scope_filter.scope_ids)
    if overlap is None:
        return own
    in_scope = exists().where(
        and_(
            func.lower(OrgUserAssignment.user_key) == func.lower(Employee.user_email),
            overlap,
        )
    )
    return or_(own, in_scope)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_clause(search: str):
    # User text is matched literally; % and _ are not wildcards.
    pattern = f"%{_escape_like(search.strip().lower())}%"
    return or_(
        func.lower(Employee.user_email).like(pattern, escape="\\"),
        func.lower(Employee.first_name).like(pattern, escape="\\"),
        func.lower(Employee.last_name).like(pattern, escape="\\"),
        func.lower(Employee.preferred_name).like(pattern, escape="\\"),
        func.lower(Employee.first_name + " " + Employee.last_name).like(pattern, escape="\\"),
    )


def display_name(employee) -> str:
    preferred = (getattr(employee, "preferred_name", None) or "").strip()
    if preferred:
        return preferred
    first = (getattr(employee, "first_name", None) or "").strip()
    last = (getattr(employee, "last_name", None) or "").strip()
    return " ".join(part for part in (first, last) if part).strip()


def _employee_fields(employee: Employee) -> dict:
    return {
        "id": employee.id,
        "user_email": employee.user_email,
        "first_name": employee.first_name,
        "last_name": employee.last_name,
        "preferred_name": employee.preferred_name,
        "profile_picture_url": employee.profile_picture_url,
        "manager_id": employee.manager_id,
        "position_id": employee.position_id,
        "hire_date": employee.hire_date,
        "job_level": employee.job_level,
        "phone": employee.phone,
        "city": employee.city,
        "state": employee.state,
        "country": employee.country,
        "is_active": employee.is_active,
        "created_at": employee.created_at,
        "updated_at": employee.updated_at,
    }


def _primary_assignments_by_key(db: Session, user_keys: list[str]) -> dict[str, OrgUserAssignment]:
    if not user_keys:
        return {}
    rows = db.execute(
        select(OrgUserAssignment)
        .where(func.lower(OrgUserAssignment.user_key).in_(sorted({k.lower() for k in user_keys})))
        .order_by(OrgUserAssignment.id.asc())
    ).scalars().all()
    by_key: dict[str, OrgUserAssignment] = {}
    for row in rows:
        by_key.setdefault((row.user_key or "").strip().lower(), row)
    return by_key


def list_employees(
    db: Session,
    *,
    scope_filter: ScopeFilter,
    page: int = 1,
    page_size: int = 25,
    search: str | None = None,
    manager_id: str | None = None,
    sort_by: str | None = None,
    sort_order: str = "asc",
    active_only: bool = False,
) -> tuple[list[dict], dict]:
    """Scope-filtered, searchable, paged employee listing."""
    conditions = []
    scope_clause = scope_filter_clause(scope_filter)
    if scope_clause is not None:
        conditions.append(scope_clause)
    if search and search.strip():
        conditions.append(_search_clause(search))
    if manager_id:
        # Bad data guard: a self-managed row is never its own direct report.
        conditions.append(and_(Employee.manager_id == manager_id, Employee.id != manager_id))
    if active_only:
        conditions.append(Employee.is_active.is_(True))

    count_stmt = select(func.count()).select_from(Employee)
    stmt = select(Employee, Position.name).outerjoin(Position, Position.id == Employee.position_id)
    if conditions:
        count_stmt = count_stmt.where(*conditions)
        stmt = stmt.where(*conditions)

    order_col = _SORT_COLUMNS.get(sort_by or "", Employee.last_name)
    order = order_col.desc() if (sort_order or "").lower() == "desc" else order_col.asc()
    stmt = stmt.order_by(order, Employee.id.asc()).offset((page - 1) * page_size).limit(page_size)

    total = int(db.execute(count_stmt).scalar() or 0)
    rows = db.execute(stmt).all()

    assignments = _primary_assignments_by_key(db, [emp.user_email for emp, _ in rows])
    items: list[dict] = []
    for employee, position_name in rows:
        assignment = assignments.get((employee.user_email or "").strip().lower())
        item = _employee_fields(employee)
        item.update(
            {
                "display_name": display_name(employee) or employee.user_email,
                "position_name": position_name,
                "division_id": assignment.division_id if assignment else None,
                "department_id": assignment.department_id if assignment else None,
                "location_id": assignment.location_id if assignment else None,
            }
        )
        items.append(item)

    pagination = {
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": math.ceil(total / page_size) if page_size else 0,
    }
    return items, pagination


def list_tree_rows(db: Session, *, scope_filter: ScopeFilter) -> list[dict]:
    """Rows for hierarchy building; only what the scope filter lets through."""
    stmt = (
        select(
            Employee.id,
            Employee.manager_id,
            Employee.user_email,
            Employee.first_name,
            Employee.last_name,
            Employee.preferred_name,
            Employee.profile_picture_url,
            Employee.is_active,
            Position.name.label("position_name"),
        )
        .outerjoin(Position, Position.id == Employee.position_id)
        .order_by(Employee.last_name.asc(), Employee.first_name.asc(), Employee.id.asc())
    )
    scope_clause = scope_filter_clause(scope_filter)
    if scope_clause is not None:
        stmt = stmt.where(scope_clause)
    return [dict(row._mapping) for row in db.execute(stmt).all()]


def get_employee(db: Session, employee_id: str) -> Employee | None:
    return db.get(Employee, employee_id)


def get_employee_by_email(db: Session, email: str) -> Employee | None:
    stmt = select(Employee).where(func.lower(Employee.user_email) == (email or "").strip().lower())
    return db.execute(stmt).scalars().first()


def update_employee_names(db: Session, employee: Employee, data: EmployeeUpdate) -> Employee:
    # only apply fields that were provided
    patch = data.model_dump(exclude_unset=True)
    for k, v in patch.items():
        if k == "preferred_name":
            v = v or None
        setattr(employee, k, v)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateError("Update violates unique constraint.") from e
    db.refresh(employee)
    return employee


def derive_employee_names_from_email(email: str) -> tuple[str, str]:
    local = (email or "").strip().lower().split("@", 1)[0]
    parts = [p.capitalize() for p in re.split(r"[._\-\s]+", local) if p]
    if len(parts) >= 2:
        return parts[0], parts[-1]
    if len(parts) == 1:
        return parts[0], "User"
    return "Employee", "User"


def ensure_employee_for_email(db: Session, email: str) -> Employee | None:
    """Return the employee for `email`, creating a minimal row when missing."""
    normalized = (email or "").strip().lower()
    if not normalized:
        return None
    existing = get_employee_by_email(db, normalized)
    if existing:
        return existing

    first_name, last_name = derive_employee_names_from_email(normalized)
    obj = Employee(
        user_email=normalized,
        first_name=first_name,
        last_name=last_name,
        preferred_name=None,
        is_active=True,
    )
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request provisioned the same user.
        db.rollback()
        return get_employee_by_email(db, normalized)
    db.refresh(obj)
    return obj


def picker_employees(
    db: Session,
    *,
    search: str | None = None,
    employee_id: str | None = None,
    user_email: str | None = None,
    limit: int = 25,
) -> list[dict]:
    stmt = select(Employee).where(Employee.is_active.is_(True))
    if employee_id:
        stmt = stmt.where(Employee.id == employee_id)
    elif user_email:
        stmt = stmt.where(func.lower(Employee.user_email) == user_email.strip().lower())
    elif search and search.strip():
        stmt = stmt.where(_search_clause(search))
    stmt = stmt.order_by(Employee.last_name.asc(), Employee.first_name.asc()).limit(limit)

    return [
        {
            "id": emp.id,
            "display_name": display_name(emp) or emp.user_email,
            "user_email": emp.user_email,
        }
        for emp in db.execute(stmt).scalars().all()
    ]
