from app.db.session import SessionLocal
from app.models.permissions import Permission
from app.models.role_permissions import RolePermission
from app.models.roles import Role
from app.services.scope_mode import ScopeMode, ScopeVerb, action_key, scope_prefixes

ENTITY = "employees"

# Role name -> (description, plain action keys before namespacing)
DEFAULT_ROLES = {
    "HRM_ADMIN": (
        "Reads and edits every employee record.",
        ["employees.read.scope.any", "employees.write.scope.any", "employees.picker"],
    ),
    "HRM_MANAGER": (
        "Reads employees sharing a division, department or location; edits own record.",
        ["employees.read.scope.ldd", "employees.write.scope.own", "employees.picker"],
    ),
    "HRM_RESTRICTED": (
        "No employee access, not even the own record.",
        ["employees.read.scope.none", "employees.write.scope.none"],
    ),
}


def scope_action_keys() -> list[str]:
    keys = []
    for verb in ScopeVerb:
        for prefix in scope_prefixes(ENTITY, verb):
            keys.extend(f"{prefix}.{mode.value}" for mode in ScopeMode)
    keys.append(action_key(f"{ENTITY}.picker"))
    return keys


def _ensure_permission(db, key: str) -> tuple[Permission, bool]:
    existing = db.query(Permission).filter(Permission.action_key == key).first()
    if existing:
        return existing, False
    obj = Permission(action_key=key)
    db.add(obj)
    db.flush()
    return obj, True


def _ensure_role(db, name: str, description: str) -> Role:
    existing = db.query(Role).filter(Role.name == name).first()
    if existing:
        return existing
    obj = Role(name=name, description=description)
    db.add(obj)
    db.flush()
    return obj


def seed_hrm_permissions(db) -> dict:
    """Idempotently create scope action keys and the default HRM roles."""
    created_permissions = 0
    by_key = {}
    for key in scope_action_keys():
        permission, created = _ensure_permission(db, key)
        by_key[key] = permission
        created_permissions += int(created)

    created_links = 0
    for name, (description, plain_keys) in DEFAULT_ROLES.items():
        role = _ensure_role(db, name, description)
        for plain in plain_keys:
            permission = by_key[action_key(plain)]
            linked = (
                db.query(RolePermission)
                .filter(RolePermission.role_id == role.id)
                .filter(RolePermission.permission_id == permission.id)
                .first()
            )
            if linked:
                continue
            db.add(RolePermission(role_id=role.id, permission_id=permission.id))
            created_links += 1

    db.commit()
    return {"permissions": created_permissions, "role_permissions": created_links}


def main():
    db = SessionLocal()
    try:
        result = seed_hrm_permissions(db)
        print(
            f"Seed complete. Added {result['permissions']} permissions "
            f"and {result['role_permissions']} role grants."
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
