"""
store.py — Data access facade for Finance Tracker.

Provides a consistent, high-level API for persisting and retrieving domain objects.
All routes and the date resolver use these functions — no route touches SQLAlchemy directly.

Design principles:
  - All functions are async and accept an AsyncSession parameter
  - No raw SQL: ORM-only queries
  - Logs only ids and dates — never monetary values or emails
  - Returns domain Pydantic objects (not ORM instances) so callers are persistence-agnostic
  - Uses flush() (not commit()) — the get_db() dependency owns the transaction
"""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.access.policy import Permission, Role
from finance_tracker.auth.schemas import UserAccount
from finance_tracker.entries.schemas import FinancialEntry
from finance_tracker.errors import ConflictError, NotFoundError
from finance_tracker.models.financial_entry import MONEY_FIELDS, FinancialEntryORM
from finance_tracker.models.profile import ProfileORM
from finance_tracker.models.profile_link import ProfileLinkORM
from finance_tracker.models.user_profile import UserProfileORM
from finance_tracker.profiles.schemas import Profile, ProfileWithPermission

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# User account operations
# ---------------------------------------------------------------------------

async def get_user_account(db: AsyncSession, user_id: str) -> Optional[UserAccount]:
    """Returns None when the user has never called create-profile."""
    orm = await db.get(UserProfileORM, user_id)
    if orm is None:
        return None
    return UserAccount.model_validate(orm)


async def create_user_account(
    db: AsyncSession,
    user_id: str,
    email: str,
    name: Optional[str] = None,
) -> UserAccount:
    """
    Create the account row for a new user.

    The very first account becomes admin (approved immediately); every later
    account starts pending and waits for an admin.
    """
    count = (await db.execute(select(func.count()).select_from(UserProfileORM))).scalar_one()
    is_first_user = count == 0
    orm = UserProfileORM(
        id=user_id,
        email=email,
        name=name,
        role=Role.admin.value if is_first_user else Role.pending.value,
        approved_at=_now() if is_first_user else None,
    )
    db.add(orm)
    await db.flush()
    logger.info("Created user account user_id=%s role=%s", user_id, orm.role)
    return UserAccount.model_validate(orm)


async def list_pending_users(db: AsyncSession) -> list[UserAccount]:
    """Pending accounts, oldest first."""
    result = await db.execute(
        select(UserProfileORM)
        .where(UserProfileORM.role == Role.pending.value)
        .order_by(UserProfileORM.created_at.asc())
    )
    return [UserAccount.model_validate(row) for row in result.scalars().all()]


async def set_user_role(
    db: AsyncSession,
    user_id: str,
    role: Role,
    decided_by: str,
) -> UserAccount:
    """
    Record an admin decision (approve as admin/approved, or reject).

    Raises:
        NotFoundError: if the user has no account row.
    """
    orm = await db.get(UserProfileORM, user_id)
    if orm is None:
        raise NotFoundError(f"User '{user_id}' not found")
    orm.role = role.value
    orm.approved_at = _now()
    orm.approved_by = decided_by
    await db.flush()
    logger.info("User role set user_id=%s role=%s by=%s", user_id, role.value, decided_by)
    return UserAccount.model_validate(orm)


# ---------------------------------------------------------------------------
# Link operations
# ---------------------------------------------------------------------------

async def get_link_permission(
    db: AsyncSession,
    user_id: str,
    profile_id: str,
) -> Optional[Permission]:
    """Permission of the (user, profile) link, or None when no link exists."""
    result = await db.execute(
        select(ProfileLinkORM.permission).where(
            ProfileLinkORM.user_id == user_id,
            ProfileLinkORM.profile_id == profile_id,
        )
    )
    permission = result.scalar_one_or_none()
    return Permission(permission) if permission is not None else None


async def add_link(
    db: AsyncSession,
    user_id: str,
    profile_id: str,
    permission: Permission,
) -> bool:
    """
    Grant user access to profile.

    An existing link is left untouched (permissions are never escalated here).
    Returns True when a new link was created.
    """
    if await get_link_permission(db, user_id, profile_id) is not None:
        logger.info("Link exists, unchanged user_id=%s profile_id=%s", user_id, profile_id)
        return False
    db.add(ProfileLinkORM(user_id=user_id, profile_id=profile_id, permission=permission.value))
    await db.flush()
    logger.info(
        "Link created user_id=%s profile_id=%s permission=%s",
        user_id,
        profile_id,
        permission.value,
    )
    return True


# ---------------------------------------------------------------------------
# Profile operations
# ---------------------------------------------------------------------------

async def get_profile(db: AsyncSession, profile_id: str) -> Optional[Profile]:
    orm = await db.get(ProfileORM, profile_id)
    if orm is None:
        return None
    return Profile.model_validate(orm)


async def list_profiles(db: AsyncSession) -> list[Profile]:
    """All profiles ordered by name (admin view)."""
    result = await db.execute(select(ProfileORM).order_by(ProfileORM.name.asc()))
    return [Profile.model_validate(row) for row in result.scalars().all()]


async def list_linked_profiles(db: AsyncSession, user_id: str) -> list[ProfileWithPermission]:
    """Profiles linked to user_id, each with the link's permission, ordered by name."""
    result = await db.execute(
        select(ProfileORM, ProfileLinkORM.permission)
        .join(ProfileLinkORM, ProfileLinkORM.profile_id == ProfileORM.id)
        .where(ProfileLinkORM.user_id == user_id)
        .order_by(ProfileORM.name.asc())
    )
    return [
        ProfileWithPermission(
            **Profile.model_validate(orm).model_dump(),
            permission=Permission(permission),
        )
        for orm, permission in result.all()
    ]


async def create_profile(db: AsyncSession, name: str, owner_id: str) -> Profile:
    """Create a profile and give its creator an edit link."""
    orm = ProfileORM(name=name)
    db.add(orm)
    await db.flush()
    await add_link(db, owner_id, orm.id, Permission.edit)
    logger.info("Created profile profile_id=%s owner=%s", orm.id, owner_id)
    return Profile.model_validate(orm)


async def rename_profile(db: AsyncSession, profile_id: str, name: str) -> Profile:
    orm = await db.get(ProfileORM, profile_id)
    if orm is None:
        raise NotFoundError(f"Profile '{profile_id}' not found")
    orm.name = name
    orm.updated_at = _now()
    await db.flush()
    logger.info("Renamed profile profile_id=%s", profile_id)
    return Profile.model_validate(orm)


async def delete_profile(db: AsyncSession, profile_id: str) -> None:
    """
    Delete a profile together with its entries and links.

    Children are deleted explicitly in the same transaction so no orphan rows
    survive even on backends that do not enforce ON DELETE CASCADE.
    """
    orm = await db.get(ProfileORM, profile_id)
    if orm is None:
        raise NotFoundError(f"Profile '{profile_id}' not found")
    entries = await db.execute(
        delete(FinancialEntryORM).where(FinancialEntryORM.profile_id == profile_id)
    )
    links = await db.execute(
        delete(ProfileLinkORM).where(ProfileLinkORM.profile_id == profile_id)
    )
    await db.delete(orm)
    await db.flush()
    logger.info(
        "Deleted profile profile_id=%s entries=%d links=%d",
        profile_id,
        entries.rowcount,
        links.rowcount,
    )


# ---------------------------------------------------------------------------
# Entry operations — date-indexed lookups
# ---------------------------------------------------------------------------

async def get_entry(db: AsyncSession, entry_id: str) -> Optional[FinancialEntry]:
    orm = await db.get(FinancialEntryORM, entry_id)
    if orm is None:
        return None
    return FinancialEntry.model_validate(orm)


async def get_entry_by_date(
    db: AsyncSession,
    profile_id: str,
    entry_date: date,
) -> Optional[FinancialEntry]:
    """Entry stored on exactly entry_date, or None."""
    result = await db.execute(
        select(FinancialEntryORM).where(
            FinancialEntryORM.profile_id == profile_id,
            FinancialEntryORM.entry_date == entry_date,
        )
    )
    orm = result.scalar_one_or_none()
    return FinancialEntry.model_validate(orm) if orm is not None else None


async def get_entry_before_date(
    db: AsyncSession,
    profile_id: str,
    before: date,
) -> Optional[FinancialEntry]:
    """Most recent entry strictly before `before`, or None (ordered search, LIMIT 1)."""
    result = await db.execute(
        select(FinancialEntryORM)
        .where(
            FinancialEntryORM.profile_id == profile_id,
            FinancialEntryORM.entry_date < before,
        )
        .order_by(FinancialEntryORM.entry_date.desc())
        .limit(1)
    )
    orm = result.scalar_one_or_none()
    return FinancialEntry.model_validate(orm) if orm is not None else None


async def get_latest_entry(db: AsyncSession, profile_id: str) -> Optional[FinancialEntry]:
    result = await db.execute(
        select(FinancialEntryORM)
        .where(FinancialEntryORM.profile_id == profile_id)
        .order_by(FinancialEntryORM.entry_date.desc())
        .limit(1)
    )
    orm = result.scalar_one_or_none()
    return FinancialEntry.model_validate(orm) if orm is not None else None


async def list_entries(db: AsyncSession, profile_id: str) -> list[FinancialEntry]:
    """All entries of a profile, most recent first."""
    result = await db.execute(
        select(FinancialEntryORM)
        .where(FinancialEntryORM.profile_id == profile_id)
        .order_by(FinancialEntryORM.entry_date.desc())
    )
    return [FinancialEntry.model_validate(row) for row in result.scalars().all()]


async def list_entry_dates(db: AsyncSession, profile_id: str) -> list[date]:
    """Every entry_date of a profile, most recent first."""
    result = await db.execute(
        select(FinancialEntryORM.entry_date)
        .where(FinancialEntryORM.profile_id == profile_id)
        .order_by(FinancialEntryORM.entry_date.desc())
    )
    return list(result.scalars().all())


async def list_entries_for_profiles(
    db: AsyncSession,
    profile_ids: list[str],
) -> list[FinancialEntry]:
    """Entries of several profiles at once, oldest first (combined analytics)."""
    if not profile_ids:
        return []
    result = await db.execute(
        select(FinancialEntryORM)
        .where(FinancialEntryORM.profile_id.in_(profile_ids))
        .order_by(FinancialEntryORM.entry_date.asc(), FinancialEntryORM.profile_id.asc())
    )
    return [FinancialEntry.model_validate(row) for row in result.scalars().all()]


# ---------------------------------------------------------------------------
# Entry operations — writes
# ---------------------------------------------------------------------------

async def _flush_unique(db: AsyncSession, profile_id: str, entry_date: date) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError(
            f"An entry for {entry_date.isoformat()} already exists for this profile"
        ) from exc


async def create_entry(
    db: AsyncSession,
    profile_id: str,
    entry_date: date,
    values: dict[str, Decimal],
    created_by: str,
) -> FinancialEntry:
    """
    Insert a new snapshot. values must already be rounded (see entries/money.py).

    Raises:
        ConflictError: if the profile already has an entry on entry_date.
    """
    if await get_entry_by_date(db, profile_id, entry_date) is not None:
        raise ConflictError(
            f"An entry for {entry_date.isoformat()} already exists for this profile"
        )
    orm = FinancialEntryORM(
        profile_id=profile_id,
        entry_date=entry_date,
        created_by=created_by,
        **{name: values.get(name, Decimal("0.00")) for name in MONEY_FIELDS},
    )
    db.add(orm)
    await _flush_unique(db, profile_id, entry_date)
    logger.info(
        "Created entry entry_id=%s profile_id=%s entry_date=%s",
        orm.id,
        profile_id,
        entry_date.isoformat(),
    )
    return FinancialEntry.model_validate(orm)


async def update_entry(
    db: AsyncSession,
    entry_id: str,
    values: dict[str, Decimal],
    entry_date: Optional[date] = None,
) -> FinancialEntry:
    """
    Partially update an entry: only keys present in values (and entry_date, if given) change.

    Raises:
        NotFoundError: unknown entry_id.
        ConflictError: entry_date collides with another entry of the same profile.
    """
    orm = await db.get(FinancialEntryORM, entry_id)
    if orm is None:
        raise NotFoundError(f"Entry '{entry_id}' not found")
    if entry_date is not None and entry_date != orm.entry_date:
        clash = await get_entry_by_date(db, orm.profile_id, entry_date)
        if clash is not None:
            raise ConflictError(
                f"An entry for {entry_date.isoformat()} already exists for this profile"
            )
        orm.entry_date = entry_date
    for name, value in values.items():
        setattr(orm, name, value)
    orm.updated_at = _now()
    await _flush_unique(db, orm.profile_id, orm.entry_date)
    logger.info("Updated entry entry_id=%s fields=%d", entry_id, len(values))
    return FinancialEntry.model_validate(orm)


async def delete_entry(db: AsyncSession, entry_id: str) -> None:
    orm = await db.get(FinancialEntryORM, entry_id)
    if orm is None:
        raise NotFoundError(f"Entry '{entry_id}' not found")
    await db.delete(orm)
    await db.flush()
    logger.info("Deleted entry entry_id=%s profile_id=%s", entry_id, orm.profile_id)
