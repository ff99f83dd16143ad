from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.core.flow_logging import flow_info
from app.schemas.request_identity import RequestIdentity
from app.services.authorization_service import PermissionOracle
from app.services.org_scope_service import assignment_overlaps_scope, resolve_org_scope_ids
from app.services.scope_filter import EXCLUDE_ALL, ScopeFilter, build_scope_filter
from app.services.scope_mode import ScopeMode, ScopeVerb, resolve_scope_mode

logger = logging.getLogger(__name__)

EMPLOYEES_ENTITY = "employees"


def _same_identity(left: str | None, right: str | None) -> bool:
    a = (left or "").strip().lower()
    b = (right or "").strip().lower()
    return bool(a) and a == b


def check_record_access(
    db: Session,
    *,
    mode: ScopeMode,
    caller_key: str | None,
    caller_subject_id: str | None,
    target_identity_key: str | None,
) -> bool:
    """
    Point-access decision for one target under an already resolved mode.

    `none` denies even the caller's own record. Under `ldd` the caller's own
    record is allowed before any assignment lookup; otherwise the target needs
    an assignment sharing a division, department or location id with the
    caller's assignments.
    """
    mode = ScopeMode(mode)
    if not (caller_key or "").strip():
        return False

    if mode is ScopeMode.NONE:
        return False
    if mode is ScopeMode.ANY:
        return True
    if mode is ScopeMode.OWN:
        return _same_identity(target_identity_key, caller_key)

    # ldd
    if _same_identity(target_identity_key, caller_key):
        return True
    if not (target_identity_key or "").strip():
        return False
    scope_ids = resolve_org_scope_ids(db, caller_subject_id or caller_key)
    return assignment_overlaps_scope(db, target_identity_key, scope_ids)


def can_access_employee(
    db: Session,
    oracle: PermissionOracle,
    identity: RequestIdentity,
    *,
    target_identity_key: str | None,
    verb: ScopeVerb | str,
) -> bool:
    if not identity.is_authenticated:
        return False
    mode = resolve_scope_mode(oracle, identity, entity=EMPLOYEES_ENTITY, verb=verb)
    allowed = check_record_access(
        db,
        mode=mode,
        caller_key=identity.email,
        caller_subject_id=identity.scope_subject,
        target_identity_key=target_identity_key,
    )
    flow_info(
        logger,
        "employee_access user=%s target=%s verb=%s mode=%s allowed=%s",
        identity.email or "-",
        target_identity_key or "-",
        ScopeVerb(verb).value,
        mode.value,
        allowed,
        category="access",
    )
    return allowed


def resolve_employee_scope_filter(
    db: Session,
    oracle: PermissionOracle,
    identity: RequestIdentity,
    *,
    verb: ScopeVerb | str = ScopeVerb.READ,
) -> ScopeFilter:
    """Resolve the caller's mode and build the matching listing filter."""
    if not identity.is_authenticated:
        return EXCLUDE_ALL
    mode = resolve_scope_mode(oracle, identity, entity=EMPLOYEES_ENTITY, verb=verb)
    scope_ids = None
    if mode is ScopeMode.LDD:
        scope_ids = resolve_org_scope_ids(db, identity.scope_subject)
    return build_scope_filter(mode, identity.email, scope_ids)
