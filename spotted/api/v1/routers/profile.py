import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from spotted.core import policies
from spotted.core.constants import Operation, Resource
from spotted.core.database import aget_db
from spotted.core.exceptions import ValidationFailed
from spotted.core.security import get_current_user
from spotted.models.user import Profile
from spotted.schemas.User import ProfileOut, ProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])

NON_NULLABLE_FIELDS = {
    "payout_method",
    "notifications_report_updates",
    "notifications_payment_received",
    "notifications_weekly_digest",
    "notifications_new_features",
}


@router.get("", response_model=ProfileOut)
async def get_profile(user: Profile = Depends(get_current_user)):
    """Get the requester's own profile"""
    policies.authorize(Resource.PROFILE, Operation.SELECT, user.id, user.id)
    return user


@router.patch("", response_model=ProfileOut)
async def update_profile(
    payload: ProfileUpdate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Update contact, payout and notification preferences"""
    policies.authorize(Resource.PROFILE, Operation.UPDATE, user.id, user.id)

    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in NON_NULLABLE_FIELDS:
            raise ValidationFailed(field, f"{field} may not be null")
        if field == "payout_method":
            value = value.value
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("Profile %s updated: %s", user.id, sorted(changes))
    return user
