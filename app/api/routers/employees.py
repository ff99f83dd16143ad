from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.deps.permission_oracle import get_permission_oracle
from app.api.deps.request_identity import require_authenticated_identity
from app.api.errors import (
    bad_request_error,
    forbidden_error,
    method_not_allowed_error,
    not_found_error,
)
from app.core.config import settings
from app.crud.employees import (
    DuplicateError,
    display_name,
    ensure_employee_for_email,
    get_employee,
    get_employee_by_email,
    list_employees,
    list_tree_rows,
    picker_employees,
    update_employee_names,
)
from app.crud.org_assignments import EmptyAssignmentError, upsert_primary_org_assignment
from app.db.session import get_db
from app.models.employees import Employee
from app.schemas.employees import (
    EmployeeListPage,
    EmployeeMeOut,
    EmployeeOut,
    EmployeeUpdate,
    PickerPage,
)
from app.schemas.org_assignments import (
    OrgAssignmentList,
    OrgAssignmentOut,
    OrgAssignmentUpsert,
)
from app.schemas.request_identity import RequestIdentity
from app.services.authorization_service import PermissionOracle, PermissionOracleError
from app.services.employee_access import can_access_employee, resolve_employee_scope_filter
from app.services.org_scope_service import list_org_assignments
from app.services.org_tree import build_forest, direct_reports
from app.services.scope_mode import PermissionOracleUnavailable, ScopeVerb, action_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hrm/employees", tags=["hrm-employees"])


def _load_employee(db: Session, employee_id: str) -> Employee:
    employee = get_employee(db, (employee_id or "").strip())
    if not employee:
        raise not_found_error(entity_type="Employee")
    return employee


def _require_read(
    db: Session,
    oracle: PermissionOracle,
    identity: RequestIdentity,
    employee: Employee,
) -> None:
    # Out-of-scope reads look like missing records.
    if not can_access_employee(
        db,
        oracle,
        identity,
        target_identity_key=employee.user_email,
        verb=ScopeVerb.READ,
    ):
        raise not_found_error(entity_type="Employee")


def _require_write(
    db: Session,
    oracle: PermissionOracle,
    identity: RequestIdentity,
    employee: Employee,
    *,
    code: str,
    detail: str,
) -> None:
    if not can_access_employee(
        db,
        oracle,
        identity,
        target_identity_key=employee.user_email,
        verb=ScopeVerb.WRITE,
    ):
        raise forbidden_error(
            detail=detail,
            code=code,
            required_permission=(
                f"{action_key('employees.write.scope.ldd')} or "
                f"{action_key('employees.write.scope.any')}"
            ),
        )


@router.get("", response_model=EmployeeListPage)
def list_employees_api(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize"),
    search: str | None = Query(None),
    manager_id: str | None = Query(None, alias="managerId"),
    sort_by: str = Query("lastName", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    active_only: bool = Query(False, alias="activeOnly"),
    identity: RequestIdentity = Depends(require_authenticated_identity),
    oracle: PermissionOracle = Depends(get_permission_oracle),
    db: Session = Depends(get_db),
):
    size = page_size or settings.EMPLOYEES_DEFAULT_PAGE_SIZE
    size = min(max(1, size), max(1, settings.EMPLOYEES_MAX_PAGE_SIZE))
    scope_filter = resolve_employee_scope_filter(db, oracle, identity, verb=ScopeVerb.READ)
    items, pagination = list_employees(
        db,
        scope_filter=scope_filter,
        page=page,
        page_size=size,
        search=search,
        manager_id=(manager_id or "").strip() or None,
        sort_by=sort_by,
        sort_order="desc" if (sort_order or "").strip().lower() == "desc" else "asc",
        active_only=active_only,
    )
    return {"items": items, "pagination": pagination}


@router.post("")
def create_employee_api(
    identity: RequestIdentity = Depends(require_authenticated_identity),
):
    raise method_not_allowed_error(
        "Employees are auto-provisioned from auth users. Edit the employee record instead."
    )


@router.get("/me", response_model=EmployeeMeOut)
def get_my_employee_api(
    identity: RequestIdentity = Depends(require_authenticated_identity),
    db: Session = Depends(get_db),
):
    if settings.EMPLOYEE_AUTO_PROVISION:
        employee = ensure_employee_for_email(db, identity.email)
    else:
        employee = get_employee_by_email(db, identity.email)
    return {
        "employee": employee,
        "display_name": display_name(employee) if employee else None,
    }


@router.get("/picker", response_model=PickerPage)
def employee_picker_api(
    search: str | None = Query(None),
    employee_id: str | None = Query(None, alias="id"),
    user_email: str | None = Query(None, alias="userEmail"),
    page_size: int = Query(25, alias="pageSize"),
    identity: RequestIdentity = Depends(require_authenticated_identity),
    oracle: PermissionOracle = Depends(get_permission_oracle),
    db: Session = Depends(get_db),
):
    required = action_key("employees.picker")
    try:
        granted = oracle.check(identity, required)
    except PermissionOracleError as exc:
        raise PermissionOracleUnavailable(str(exc)) from exc
    if not granted:
        raise forbidden_error(
            detail="Employee search requires the picker permission.",
            code="HRM_PICKER_DENIED",
            required_permission=required,
        )

    limit = min(max(1, page_size), max(1, settings.PICKER_MAX_PAGE_SIZE))
    items = picker_employees(
        db,
        search=search,
        employee_id=(employee_id or "").strip() or None,
        user_email=(user_email or "").strip() or None,
        limit=limit,
    )
    return {"items": items}


@router.get("/org-tree")
def org_tree_api(
    identity: RequestIdentity = Depends(require_authenticated_identity),
    oracle: PermissionOracle = Depends(get_permission_oracle),
    db: Session = Depends(get_db),
):
    scope_filter = resolve_employee_scope_filter(db, oracle, identity, verb=ScopeVerb.READ)
    rows = list_tree_rows(db, scope_filter=scope_filter)
    roots = build_forest(rows)
    return {"orgTree": [root.to_dict() for root in roots]}


@router.get("/{employee_id}", response_model=EmployeeOut)
def get_employee_api(
    employee_id: str,
    identity: RequestIdentity = Depends(require_authenticated_identity),
    oracle: PermissionOracle = Depends(get_permission_oracle),
    db: Session = Depends(get_db),
):
    employee = _load_employee(db, employee_id)
    _require_read(db, oracle, identity, employee)
    return employee


@router.put("/{employee_id}", response_model=EmployeeOut)
def update_employee_api(
    employee_id: str,
    payload: EmployeeUpdate,
    identity: RequestIdentity = Depends(require_authenticated_identity),
    oracle: PermissionOracle = Depends(get_permission_oracle),
    db: Session = Depends(get_db),
):
    employee = _load_employee(db, employee_id)
    _require_write(
        db,
        oracle,
        identity,
        employee,
        code="HRM_WRITE_SCOPE_INSUFFICIENT",
        detail=(
            "You can only edit employee records inside your write scope. "
            "Contact an admin to grant HRM write scope."
        ),
    )

    fields = payload.model_fields_set
    if not fields:
        raise bad_request_error("No fields to update")
    if "first_name" in fields and not payload.first_name:
        raise bad_request_error("firstName cannot be empty")
    if "last_name" in fields and not payload.last_name:
        raise bad_request_error("lastName cannot be empty")

    try:
        return update_employee_names(db, employee, payload)
    except DuplicateError as e:
        raise bad_request_error(str(e), code="CONFLICT")


@router.delete("/{employee_id}")
def delete_employee_api(
    employee_id: str,
    identity: RequestIdentity = Depends(require_authenticated_identity),
):
    raise method_not_allowed_error(
        "Employees are auto-provisioned from auth users. Deleting is not supported."
    )


@router.get("/{employee_id}/direct-reports")
def direct_reports_api(
    employee_id: str,
    identity: RequestIdentity = Depends(require_authenticated_identity),
    oracle: PermissionOracle = Depends(get_permission_oracle),
    db: Session = Depends(get_db),
):
    employee = _load_employee(db, employee_id)
    _require_read(db, oracle, identity, employee)

    scope_filter = resolve_employee_scope_filter(db, oracle, identity, verb=ScopeVerb.READ)
    rows = list_tree_rows(db, scope_filter=scope_filter)
    result = direct_reports(rows, employee.id, root_identity_key=employee.user_email)
    return result.to_dict()


def _employee_identity_key(employee: Employee) -> str:
    email = (employee.user_email or "").strip()
    if not email:
        raise bad_request_error("Employee is missing userEmail")
    return email


@router.get("/{employee_id}/org-scope", response_model=OrgAssignmentList)
def get_org_scope_api(
    employee_id: str,
    identity: RequestIdentity = Depends(require_authenticated_identity),
    oracle: PermissionOracle = Depends(get_permission_oracle),
    db: Session = Depends(get_db),
):
    employee = _load_employee(db, employee_id)
    email = _employee_identity_key(employee)
    _require_write(
        db,
        oracle,
        identity,
        employee,
        code="HRM_ORG_SCOPE_WRITE_DENIED",
        detail=(
            "You can only edit org scope for employees inside your write scope. "
            "Contact an admin to grant HRM write scope."
        ),
    )
    return {"items": list_org_assignments(db, email)}


@router.put("/{employee_id}/org-scope", response_model=OrgAssignmentOut)
def put_org_scope_api(
    employee_id: str,
    payload: OrgAssignmentUpsert,
    response: Response,
    identity: RequestIdentity = Depends(require_authenticated_identity),
    oracle: PermissionOracle = Depends(get_permission_oracle),
    db: Session = Depends(get_db),
):
    employee = _load_employee(db, employee_id)
    email = _employee_identity_key(employee)
    _require_write(
        db,
        oracle,
        identity,
        employee,
        code="HRM_ORG_SCOPE_WRITE_DENIED",
        detail=(
            "You can only update org scope for employees inside your write scope. "
            "Contact an admin to grant HRM write scope."
        ),
    )
    try:
        assignment, created = upsert_primary_org_assignment(
            db,
            user_key=email,
            data=payload,
            created_by_user_key=identity.email or identity.subject,
        )
    except EmptyAssignmentError as e:
        raise bad_request_error(str(e))

    if created:
        response.status_code = status.HTTP_201_CREATED
    logger.info(
        "org_scope_upsert actor=%s target=%s created=%s",
        identity.email or "-",
        email,
        created,
    )
    return assignment
