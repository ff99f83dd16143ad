from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request

from app.core.config import settings
from app.core.security.token_claims import AuthTokenValidationError, decode_bearer_token
from app.schemas.request_identity import RequestIdentity

logger = logging.getLogger(__name__)

_TOKEN_COOKIE = "hit_token"


def _normalized_auth_mode() -> str:
    raw = (settings.AUTH_MODE or "legacy_header").strip().lower()
    if raw in {"legacy_header", "dual", "jwt_only"}:
        return raw
    return "legacy_header"


def _extract_bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization") or ""
    prefix = "Bearer "
    if header.startswith(prefix):
        token = header[len(prefix) :].strip()
        if token:
            return token
    cookie_token = (request.cookies.get(_TOKEN_COOKIE) or "").strip()
    return cookie_token or None


def _split_roles(raw: object) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        values = [str(item) for item in raw]
    else:
        values = str(raw).split(",")
    return [value.strip() for value in values if value and value.strip()]


def _identity_from_legacy_header(request: Request) -> RequestIdentity:
    email = (
        request.headers.get("X-User-Email")
        or request.headers.get("X-User")
        or ""
    ).strip().lower()
    subject = (request.headers.get("X-User-Id") or "").strip() or email
    return RequestIdentity(
        subject=subject or None,
        email=email or None,
        auth_source="legacy_header",
        claims={},
        roles=_split_roles(request.headers.get("X-User-Roles")),
    )


def _extract_email_from_claims(claims: dict) -> str | None:
    for key in ("email", "upn", "preferred_username", "username"):
        value = claims.get(key)
        if value is None:
            continue
        text = str(value).strip().lower()
        if text:
            return text
    # Namespaced custom claims, e.g. "https://tenant.example.com/email".
    for raw_key, raw_value in claims.items():
        key = str(raw_key).strip().lower()
        if not (key.endswith("/email") or key.endswith(":email") or key.endswith("_email")):
            continue
        if raw_value is None:
            continue
        text = str(raw_value).strip().lower()
        if text:
            return text
    return None


def _identity_from_token(token: str) -> RequestIdentity:
    try:
        claims = decode_bearer_token(token)
    except AuthTokenValidationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    subject = claims.get("sub")
    subject_text = str(subject).strip() if subject is not None else ""
    email = _extract_email_from_claims(claims)
    if not email:
        logger.warning(
            "jwt_identity_email_missing subject=%s claim_keys=%s",
            subject_text or "-",
            sorted(str(k) for k in claims.keys()),
        )
    return RequestIdentity(
        subject=subject_text or email,
        email=email,
        auth_source="jwt",
        claims=claims,
        roles=_split_roles(claims.get("roles", claims.get("role"))),
        bearer_token=token,
    )


def resolve_request_identity(request: Request) -> RequestIdentity:
    token = _extract_bearer_token(request)
    mode = _normalized_auth_mode()
    if mode == "legacy_header":
        return _identity_from_legacy_header(request)

    if mode == "jwt_only":
        if not token:
            raise HTTPException(status_code=401, detail="Missing Bearer access token.")
        return _identity_from_token(token)

    # dual mode: prefer JWT when present, otherwise fallback to legacy header.
    if token:
        return _identity_from_token(token)
    return _identity_from_legacy_header(request)


def get_request_identity(request: Request) -> RequestIdentity:
    return resolve_request_identity(request)


def require_authenticated_identity(
    identity: RequestIdentity = Depends(get_request_identity),
) -> RequestIdentity:
    if not identity.is_authenticated:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return identity
