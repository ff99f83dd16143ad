import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Employee(Base):
    __tablename__ = "hrm_employees"

    __table_args__ = (
        UniqueConstraint("user_email", name="uq_hrm_employees_user_email"),
        Index("ix_hrm_employees_manager_id", "manager_id"),
        Index("ix_hrm_employees_last_name", "last_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    # Identity key shared with auth users and org assignments (email today).
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    preferred_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    profile_picture_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Weak self-reference: no FK, may be null, dangling or equal to id.
    manager_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # References hrm_positions.id (positions are owned by another module).
    position_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    job_level: Mapped[int | None] = mapped_column(Integer, nullable=True)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
