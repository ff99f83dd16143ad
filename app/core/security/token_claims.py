from __future__ import annotations

import jwt

from app.core.config import settings


class AuthTokenValidationError(Exception):
    pass


def _algorithms() -> list[str]:
    algorithms = [
        token.strip().upper()
        for token in (settings.AUTH_JWT_ALGORITHMS or "HS256").split(",")
        if token.strip()
    ]
    return algorithms or ["HS256"]


def decode_bearer_token(token: str) -> dict:
    """
    Decode and validate a bearer JWT.

    Signature verification needs AUTH_JWT_SECRET. Without it tokens are only
    accepted when AUTH_ALLOW_INSECURE_DEV_TOKENS is on, and even then expiry is
    still checked.
    """
    leeway = max(0, int(settings.AUTH_JWT_CLOCK_SKEW_SEC or 0))
    try:
        if settings.AUTH_JWT_SECRET:
            claims = jwt.decode(
                token,
                key=settings.AUTH_JWT_SECRET,
                algorithms=_algorithms(),
                leeway=leeway,
                options={"verify_aud": False},
            )
        elif settings.AUTH_ALLOW_INSECURE_DEV_TOKENS:
            claims = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": True, "verify_aud": False},
                leeway=leeway,
            )
        else:
            raise AuthTokenValidationError("Token verification is not configured.")
    except jwt.ExpiredSignatureError as exc:
        raise AuthTokenValidationError("Token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthTokenValidationError(f"Invalid token: {exc}") from exc

    if not isinstance(claims, dict):
        raise AuthTokenValidationError("Token payload is not an object.")
    return claims
