"""
models/__init__.py — imports all ORM models so Alembic's env.py
sees them via Base.metadata when generating migrations.

Import order follows FK dependencies: users and profiles before links and entries.
"""
from finance_tracker.models.user_profile import UserProfileORM
from finance_tracker.models.profile import ProfileORM
from finance_tracker.models.profile_link import ProfileLinkORM
from finance_tracker.models.financial_entry import FinancialEntryORM

__all__ = ["UserProfileORM", "ProfileORM", "ProfileLinkORM", "FinancialEntryORM"]
