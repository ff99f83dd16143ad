from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Permission(Base):
    __tablename__ = "permissions"

    __table_args__ = (
        UniqueConstraint("action_key", name="uq_permissions_action_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Dotted action key, e.g. "employees.read.scope.ldd" or "employees.picker".
    action_key: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
