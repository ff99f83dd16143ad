from __future__ import annotations

from app.core.config import settings
from app.models.permissions import Permission
from app.models.roles import Role
from app.services.authorization_service import user_has_permission
from app.models.user_roles import UserRole
from app.models.users import User
from scripts.seed_hrm_permissions import scope_action_keys, seed_hrm_permissions


def test_scope_action_keys_cover_entity_and_global_prefixes():
    keys = scope_action_keys()

    assert "employees.read.scope.ldd" in keys
    assert "write.scope.none" in keys
    assert "delete.scope.any" in keys
    assert "employees.picker" in keys
    assert len(keys) == len(set(keys)) == 3 * 2 * 4 + 1


def test_namespace_applies_to_seeded_keys(monkeypatch):
    monkeypatch.setattr(settings, "SCOPE_ACTION_NAMESPACE", "hrm")
    assert all(key.startswith("hrm.") for key in scope_action_keys())


def test_seed_is_idempotent(db_session):
    first = seed_hrm_permissions(db_session)
    second = seed_hrm_permissions(db_session)

    assert first == {"permissions": 25, "role_permissions": 8}
    assert second == {"permissions": 0, "role_permissions": 0}
    assert db_session.query(Permission).count() == 25
    assert {r.name for r in db_session.query(Role).all()} == {
        "HRM_ADMIN",
        "HRM_MANAGER",
        "HRM_RESTRICTED",
    }


def test_seeded_role_grants_reach_the_permission_check(db_session):
    seed_hrm_permissions(db_session)
    manager = db_session.query(Role).filter(Role.name == "HRM_MANAGER").one()
    user = User(username="mgr", email="mgr@example.com", is_active=True)
    db_session.add(user)
    db_session.flush()
    db_session.add(UserRole(user_id=user.id, role_id=manager.id))
    db_session.commit()

    assert user_has_permission(
        db_session, user_email="mgr@example.com", action_key="employees.read.scope.ldd"
    )
    assert not user_has_permission(
        db_session, user_email="mgr@example.com", action_key="employees.read.scope.any"
    )
