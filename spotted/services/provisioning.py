"""Account creation and identity provisioning.

Signup writes the credential record and the identity profile in a single
transaction, so an authenticated account without a profile can never be
committed. ``ensure_profile`` is the idempotent repair path run after every
successful authentication.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from spotted.core.exceptions import DuplicateAccount
from spotted.core.security import hash_password, verify_password
from spotted.models.user import AuthAccount, Profile

logger = logging.getLogger(__name__)


def _build_profile(account_id: str, email: str, full_name: Optional[str] = None) -> Profile:
    return Profile(id=account_id, email=email, full_name=full_name)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def signup(
    db: AsyncSession, email: str, password: str, full_name: Optional[str] = None
) -> Profile:
    """Create an account and its profile atomically; return the profile."""
    email = normalize_email(email)

    existing = await db.scalar(select(AuthAccount.id).where(AuthAccount.email == email))
    if existing:
        raise DuplicateAccount(email)

    account = AuthAccount(email=email, password_hash=hash_password(password))
    db.add(account)
    try:
        await db.flush()
        profile = _build_profile(account.id, email, full_name)
        db.add(profile)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateAccount(email)
    except Exception:
        await db.rollback()
        logger.error("Signup for %s rolled back: profile provisioning failed", email)
        raise

    await db.refresh(profile)
    logger.info("Signed up %s as %s", email, profile.id)
    return profile


async def authenticate(db: AsyncSession, email: str, password: str) -> Optional[AuthAccount]:
    account = await db.scalar(
        select(AuthAccount).where(AuthAccount.email == normalize_email(email))
    )
    if account is None or not verify_password(password, account.password_hash):
        return None
    return account


async def ensure_profile(
    db: AsyncSession, account: AuthAccount, full_name: Optional[str] = None
) -> Profile:
    """Return the account's profile, creating it if it does not exist yet."""
    account_id, email = account.id, account.email

    profile = await db.get(Profile, account_id)
    if profile is not None:
        return profile

    db.add(_build_profile(account_id, email, full_name))
    try:
        await db.commit()
    except IntegrityError:
        # Provisioned concurrently; the primary key keeps it to one row
        await db.rollback()
        profile = await db.get(Profile, account_id)
        if profile is None:
            raise
        return profile

    logger.info("Provisioned missing profile for %s", account_id)
    return await db.get(Profile, account_id)
