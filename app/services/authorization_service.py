from __future__ import annotations

import logging
from typing import Protocol

import requests
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.permissions import Permission
from app.models.role_permissions import RolePermission
from app.models.user_roles import UserRole
from app.models.users import User
from app.schemas.request_identity import RequestIdentity

logger = logging.getLogger(__name__)


class PermissionOracleError(Exception):
    """A single permission check could not be answered."""


class PermissionOracle(Protocol):
    def check(self, identity: RequestIdentity, action_key: str) -> bool:
        ...


def _normalize_token(value: str | None) -> str:
    return str(value or "").strip().lower()


def user_has_permission(
    db: Session,
    *,
    user_email: str | None,
    action_key: str | None,
) -> bool:
    email = _normalize_token(user_email)
    action = _normalize_token(action_key)
    if not email or not action:
        return False

    row = (
        db.query(RolePermission.id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .join(User, User.id == UserRole.user_id)
        .filter(func.lower(User.email) == email)
        .filter(User.is_active.is_(True))
        .filter(func.lower(Permission.action_key) == action)
        .first()
    )
    return row is not None


class RolePermissionOracle:
    """Answers grants from the local users/roles/permissions tables."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def check(self, identity: RequestIdentity, action_key: str) -> bool:
        try:
            return user_has_permission(
                self._db,
                user_email=identity.email,
                action_key=action_key,
            )
        except SQLAlchemyError as exc:
            raise PermissionOracleError(f"permission lookup failed for {action_key}") from exc


class RemotePermissionOracle:
    """
    Asks the external auth service whether the caller holds an action grant.

    Contract: POST {base_url}/permissions/check with {"actionKey": ...}.
    A 2xx JSON body carries `ok` (or `granted`); 401/403 mean "not granted".
    Anything else is an oracle failure for that one check.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = (base_url or settings.PERMISSION_SERVICE_URL).rstrip("/")
        self._timeout_seconds = float(
            timeout_seconds
            if timeout_seconds is not None
            else settings.PERMISSION_SERVICE_TIMEOUT_SEC
        )
        self._http = session or requests.Session()

    def _headers(self, identity: RequestIdentity) -> dict[str, str]:
        headers: dict[str, str] = {}
        if identity.bearer_token:
            headers["Authorization"] = f"Bearer {identity.bearer_token}"
        else:
            if identity.subject:
                headers["X-User-Id"] = identity.subject
            if identity.email:
                headers["X-User-Email"] = identity.email
            if identity.roles:
                headers["X-User-Roles"] = ",".join(identity.roles)
        return headers

    def check(self, identity: RequestIdentity, action_key: str) -> bool:
        url = f"{self._base_url}/permissions/check"
        try:
            response = self._http.post(
                url,
                json={"actionKey": action_key},
                headers=self._headers(identity),
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise PermissionOracleError(f"permission service unreachable: {exc}") from exc

        if response.status_code in (401, 403):
            return False
        if response.status_code >= 400:
            raise PermissionOracleError(
                f"permission service returned {response.status_code} for {action_key}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise PermissionOracleError("permission service returned invalid JSON.") from exc
        if not isinstance(body, dict):
            raise PermissionOracleError("permission service returned a non-object JSON payload.")
        return bool(body.get("ok", body.get("granted", False)))


def build_permission_oracle(db: Session) -> PermissionOracle:
    mode = (settings.PERMISSION_ORACLE_MODE or "db").strip().lower()
    if mode == "remote":
        return RemotePermissionOracle()
    if mode != "db":
        logger.warning("permission_oracle_mode_unknown mode=%s fallback=db", mode)
    return RolePermissionOracle(db)
