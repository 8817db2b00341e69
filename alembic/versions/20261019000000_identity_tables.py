"""Identity tables: users, roles and user_roles.

Revision ID: 20261019000000
Revises:
Create Date: 2026-10-19

"""
import uuid
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20261019000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE_NAMES = ("Administrator", "PowerUser", "User")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_name", sa.String(length=256), nullable=False),
        sa.Column("normalized_user_name", sa.String(length=256), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=False),
        sa.Column("normalized_email", sa.String(length=256), nullable=False),
        sa.Column("email_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=256), nullable=False),
        sa.Column("last_name", sa.String(length=256), nullable=True),
        sa.Column("profile_image_path", sa.String(length=512), nullable=True),
        sa.Column("security_stamp", sa.String(length=64), nullable=False),
        sa.Column("access_failed_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lockout_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("lockout_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refresh_token", sa.String(length=512), nullable=True),
        sa.Column("refresh_token_expiration", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index(op.f("ix_users_normalized_user_name"), "users", ["normalized_user_name"], unique=True)
    op.create_index(op.f("ix_users_normalized_email"), "users", ["normalized_email"], unique=True)

    roles = op.create_table(
        "roles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("normalized_name", sa.String(length=256), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_roles")),
    )
    op.create_index(op.f("ix_roles_normalized_name"), "roles", ["normalized_name"], unique=True)

    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("role_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_user_roles_user_id_users"), ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["role_id"], ["roles.id"], name=op.f("fk_user_roles_role_id_roles"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("user_id", "role_id", name=op.f("pk_user_roles")),
    )

    op.bulk_insert(
        roles,
        [{"id": uuid.uuid4(), "name": name, "normalized_name": name.upper()} for name in ROLE_NAMES],
    )


def downgrade() -> None:
    op.drop_table("user_roles")
    op.drop_index(op.f("ix_roles_normalized_name"), table_name="roles")
    op.drop_table("roles")
    op.drop_index(op.f("ix_users_normalized_email"), table_name="users")
    op.drop_index(op.f("ix_users_normalized_user_name"), table_name="users")
    op.drop_table("users")
