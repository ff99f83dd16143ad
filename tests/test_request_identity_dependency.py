from __future__ import annotations

import time

import jwt
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.api.deps import request_identity as request_identity_module
from app.core.config import settings
from app.schemas.request_identity import RequestIdentity

_SECRET = "test-signing-secret-with-enough-bytes-for-hs256"


def _token(claims: dict, secret: str = _SECRET) -> str:
    payload = {"iat": int(time.time()), "exp": int(time.time()) + 600}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture(autouse=True)
def _jwt_settings(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", _SECRET)
    monkeypatch.setattr(settings, "AUTH_JWT_ALGORITHMS", "HS256")
    monkeypatch.setattr(settings, "AUTH_JWT_CLOCK_SKEW_SEC", 0)
    monkeypatch.setattr(settings, "AUTH_ALLOW_INSECURE_DEV_TOKENS", False)


def _build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/whoami")
    def whoami(identity: RequestIdentity = Depends(request_identity_module.get_request_identity)):
        return {
            "email": identity.email,
            "source": identity.auth_source,
            "sub": identity.subject,
            "roles": identity.roles,
        }

    @app.get("/private")
    def private(
        identity: RequestIdentity = Depends(request_identity_module.require_authenticated_identity),
    ):
        return {"email": identity.email}

    return app


def test_legacy_header_mode_uses_x_user_email(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "legacy_header")
    with TestClient(_build_app()) as client:
        r = client.get(
            "/whoami",
            headers={"X-User-Email": "Legacy@Example.com", "X-User-Roles": "HR, ADMIN"},
        )
        assert r.status_code == 200
        payload = r.json()
        assert payload["email"] == "legacy@example.com"
        assert payload["sub"] == "legacy@example.com"
        assert payload["source"] == "legacy_header"
        assert payload["roles"] == ["HR", "ADMIN"]


def test_legacy_header_mode_ignores_bearer_token(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "legacy_header")
    with TestClient(_build_app()) as client:
        r = client.get(
            "/whoami",
            headers={
                "Authorization": f"Bearer {_token({'sub': 'u-1', 'email': 'jwt@example.com'})}",
                "X-User-Email": "legacy@example.com",
            },
        )
        assert r.status_code == 200
        payload = r.json()
        assert payload["email"] == "legacy@example.com"
        assert payload["source"] == "legacy_header"


def test_jwt_only_mode_requires_bearer(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt_only")
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"X-User-Email": "legacy@example.com"})
        assert r.status_code == 401


def test_dual_mode_prefers_bearer(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "dual")
    token = _token({"sub": "auth0|u-1", "email": "JWT@example.com", "roles": ["HR"]})
    with TestClient(_build_app()) as client:
        r = client.get(
            "/whoami",
            headers={
                "Authorization": f"Bearer {token}",
                "X-User-Email": "legacy@example.com",
            },
        )
        assert r.status_code == 200
        payload = r.json()
        assert payload["email"] == "jwt@example.com"
        assert payload["sub"] == "auth0|u-1"
        assert payload["source"] == "jwt"
        assert payload["roles"] == ["HR"]


def test_dual_mode_falls_back_to_legacy_header(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "dual")
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"X-User-Email": "legacy@example.com"})
        assert r.json()["source"] == "legacy_header"


def test_token_read_from_cookie(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt_only")
    with TestClient(_build_app()) as client:
        client.cookies.set("hit_token", _token({"sub": "u-9", "email": "cookie@example.com"}))
        r = client.get("/whoami")
        assert r.status_code == 200
        assert r.json()["email"] == "cookie@example.com"


def test_jwt_email_extracted_from_namespaced_claim(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt_only")
    token = _token(
        {"sub": "auth0|u-2", "https://tenant.example.com/email": "ns.jwt@example.com"}
    )
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200
        payload = r.json()
        assert payload["email"] == "ns.jwt@example.com"
        assert payload["source"] == "jwt"


def test_expired_token_is_rejected(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt_only")
    token = _token({"sub": "u-1", "email": "jwt@example.com", "exp": int(time.time()) - 60})
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401
        assert r.json()["detail"] == "Token has expired."


def test_token_signed_with_other_secret_is_rejected(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt_only")
    token = _token(
        {"sub": "u-1", "email": "jwt@example.com"},
        secret="another-signing-secret-with-enough-bytes-too",
    )
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401


def test_unsigned_dev_tokens_need_explicit_opt_in(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt_only")
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", "")
    token = _token({"sub": "u-1", "email": "dev@example.com"}, secret="dev-only-secret-value-long-enough-x")
    with TestClient(_build_app()) as client:
        assert client.get("/whoami", headers={"Authorization": f"Bearer {token}"}).status_code == 401

        monkeypatch.setattr(settings, "AUTH_ALLOW_INSECURE_DEV_TOKENS", True)
        r = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200
        assert r.json()["email"] == "dev@example.com"


def test_missing_email_is_unauthenticated(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt_only")
    token = _token({"sub": "u-1"})
    with TestClient(_build_app()) as client:
        r = client.get("/private", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401
        assert r.json()["detail"] == "Unauthorized"
