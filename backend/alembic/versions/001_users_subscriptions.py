"""Users and their pilot subscriptions

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("usertype", sa.String(16), nullable=False),
        sa.Column("since", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("username", "usertype", name="uq_users_username_usertype"),
    )
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("pilot_username", sa.String(128), nullable=False),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"], unique=False)
    op.create_index(
        "uq_subscriptions_user_pilot",
        "subscriptions",
        ["user_id", sa.text("lower(pilot_username)")],
        unique=True,
    )
    op.create_index(
        "ix_subscriptions_pilot_lower",
        "subscriptions",
        [sa.text("lower(pilot_username)")],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_subscriptions_pilot_lower", table_name="subscriptions")
    op.drop_index("uq_subscriptions_user_pilot", table_name="subscriptions")
    op.drop_index("ix_subscriptions_user_id", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_table("users")
