from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.authorization_service import PermissionOracle, build_permission_oracle


def get_permission_oracle(db: Session = Depends(get_db)) -> PermissionOracle:
    return build_permission_oracle(db)
