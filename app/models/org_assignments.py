from datetime import datetime

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class OrgUserAssignment(Base):
    __tablename__ = "org_user_assignments"

    # No uniqueness on user_key: several rows per user are tolerated.
    __table_args__ = (
        Index("ix_org_user_assignments_user_key", "user_key"),
        Index("ix_org_user_assignments_division_id", "division_id"),
        Index("ix_org_user_assignments_department_id", "department_id"),
        Index("ix_org_user_assignments_location_id", "location_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_key: Mapped[str] = mapped_column(String(255), nullable=False)

    division_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    department_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    location_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    created_by_user_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
