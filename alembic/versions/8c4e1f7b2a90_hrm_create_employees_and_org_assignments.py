"""HRM create positions, employees, org_user_assignments

Revision ID: 8c4e1f7b2a90
Revises: 3a91c2d4e5f6
Create Date: 2026-03-02 10:02:57.118530

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c4e1f7b2a90'
down_revision: Union[str, Sequence[str], None] = '3a91c2d4e5f6'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "hrm_positions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
    )

    op.create_table(
        "hrm_employees",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=False),
        sa.Column("preferred_name", sa.String(length=255), nullable=True),
        sa.Column("profile_picture_url", sa.Text(), nullable=True),
        # No FK: manager_id may dangle or point at the row itself.
        sa.Column("manager_id", sa.String(length=36), nullable=True),
        sa.Column("position_id", sa.String(length=36), nullable=True),
        sa.Column("hire_date", sa.Date(), nullable=True),
        sa.Column("job_level", sa.Integer(), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),

        sa.UniqueConstraint("user_email", name="uq_hrm_employees_user_email"),
    )
    op.create_index("ix_hrm_employees_manager_id", "hrm_employees", ["manager_id"])
    op.create_index("ix_hrm_employees_last_name", "hrm_employees", ["last_name"])

    op.create_table(
        "org_user_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_key", sa.String(length=255), nullable=False),
        sa.Column("division_id", sa.String(length=36), nullable=True),
        sa.Column("department_id", sa.String(length=36), nullable=True),
        sa.Column("location_id", sa.String(length=36), nullable=True),
        sa.Column("created_by_user_key", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_org_user_assignments_user_key", "org_user_assignments", ["user_key"])
    op.create_index("ix_org_user_assignments_division_id", "org_user_assignments", ["division_id"])
    op.create_index("ix_org_user_assignments_department_id", "org_user_assignments", ["department_id"])
    op.create_index("ix_org_user_assignments_location_id", "org_user_assignments", ["location_id"])


def downgrade() -> None:
    op.drop_index("ix_org_user_assignments_location_id", table_name="org_user_assignments")
    op.drop_index("ix_org_user_assignments_department_id", table_name="org_user_assignments")
    op.drop_index("ix_org_user_assignments_division_id", table_name="org_user_assignments")
    op.drop_index("ix_org_user_assignments_user_key", table_name="org_user_assignments")
    op.drop_table("org_user_assignments")
    op.drop_index("ix_hrm_employees_last_name", table_name="hrm_employees")
    op.drop_index("ix_hrm_employees_manager_id", table_name="hrm_employees")
    op.drop_table("hrm_employees")
    op.drop_table("hrm_positions")
