from __future__ import annotations

from fastapi import HTTPException


def _error_detail(
    *,
    error: str,
    detail: str | None = None,
    code: str | None = None,
    required_permission: str | None = None,
) -> dict:
    payload: dict = {"error": error, "code": code}
    if detail:
        payload["detail"] = detail
    if required_permission:
        payload["requiredPermission"] = required_permission
    return payload


def forbidden_error(
    *,
    message: str = "Permission denied",
    detail: str | None = None,
    code: str = "FORBIDDEN",
    required_permission: str | None = None,
) -> HTTPException:
    return HTTPException(
        status_code=403,
        detail=_error_detail(
            error=message,
            detail=detail,
            code=code,
            required_permission=required_permission,
        ),
    )


def not_found_error(*, entity_type: str = "Resource", detail: str | None = None) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=_error_detail(error=f"{entity_type} not found", detail=detail, code="NOT_FOUND"),
    )


def bad_request_error(message: str, *, code: str = "BAD_REQUEST") -> HTTPException:
    return HTTPException(status_code=400, detail=_error_detail(error=message, code=code))


def method_not_allowed_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=405,
        detail=_error_detail(error=message, code="METHOD_NOT_ALLOWED"),
    )
