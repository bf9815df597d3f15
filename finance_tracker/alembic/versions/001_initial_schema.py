"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 12:00:00.000000 UTC

Creates the four core tables:
  - user_profiles       (identity-provider users, role + approval audit)
  - profiles            (named containers of entries)
  - user_profile_links  (per-user read/edit grants, unique per user+profile)
  - financial_entries   (dated snapshots, 18 NUMERIC(15,2) columns, unique per profile+day)
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY_COLUMNS = (
    "direct_equity",
    "esops",
    "equity_pms",
    "ulip",
    "real_estate",
    "real_estate_funds",
    "private_equity",
    "equity_mutual_funds",
    "structured_products_equity",
    "bank_balance",
    "debt_mutual_funds",
    "endowment_plans",
    "fixed_deposits",
    "nps",
    "epf",
    "ppf",
    "structured_products_debt",
    "gold_etfs_funds",
)


def upgrade() -> None:
    # --- user_profiles table ---
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(length=36), nullable=False, comment="Identity provider user id — matches the bearer token 'sub' claim"),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=10), nullable=False, server_default="pending", comment="'pending', 'approved', 'admin' or 'rejected' — mirrors Role enum"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_profiles_role"), "user_profiles", ["role"], unique=False)

    # --- profiles table ---
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), nullable=False, comment="UUID primary key"),
        sa.Column("name", sa.String(length=200), nullable=False, comment="Display name, stored trimmed"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # --- user_profile_links table ---
    op.create_table(
        "user_profile_links",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("profile_id", sa.String(length=36), nullable=False),
        sa.Column("permission", sa.String(length=4), nullable=False, comment="'read' or 'edit' — mirrors Permission enum"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "profile_id", name="uq_user_profile_links_user_profile"),
    )
    op.create_index(op.f("ix_user_profile_links_user_id"), "user_profile_links", ["user_id"], unique=False)
    op.create_index(op.f("ix_user_profile_links_profile_id"), "user_profile_links", ["profile_id"], unique=False)

    # --- financial_entries table ---
    money = [
        sa.Column(name, sa.Numeric(precision=15, scale=2), nullable=False, server_default="0")
        for name in MONEY_COLUMNS
    ]
    op.create_table(
        "financial_entries",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("profile_id", sa.String(length=36), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False, comment="Calendar day of the snapshot — wire format YYYY-MM-DD"),
        *money,
        sa.Column("created_by", sa.String(length=36), nullable=False, comment="User id of the creator"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("profile_id", "entry_date", name="uq_financial_entries_profile_date"),
    )
    op.create_index(
        "ix_financial_entries_profile_date",
        "financial_entries",
        ["profile_id", "entry_date"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_financial_entries_profile_date", table_name="financial_entries")
    op.drop_table("financial_entries")
    op.drop_index(op.f("ix_user_profile_links_profile_id"), table_name="user_profile_links")
    op.drop_index(op.f("ix_user_profile_links_user_id"), table_name="user_profile_links")
    op.drop_table("user_profile_links")
    op.drop_table("profiles")
    op.drop_index(op.f("ix_user_profiles_role"), table_name="user_profiles")
    op.drop_table("user_profiles")
