import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from spotted.core.config import settings
from spotted.core.constants import CENTS, VIOLATION_TYPES
from spotted.models.violation import ViolationType

logger = logging.getLogger(__name__)


def compute_reward(fine: int) -> Decimal:
    """Reward for a fine: ``round(fine * REWARD_RATE, 2)``, rounding half up."""
    rate = Decimal(str(settings.REWARD_RATE))
    return (Decimal(fine) * rate).quantize(CENTS, rounding=ROUND_HALF_UP)


async def list_violation_types(db: AsyncSession) -> List[ViolationType]:
    result = await db.execute(select(ViolationType).order_by(ViolationType.label))
    return list(result.scalars().all())


async def resolve_fine(db: AsyncSession, violation_type: str) -> int:
    """Catalog fine for a violation type, or the configured default."""
    fine = await db.scalar(select(ViolationType.fine).where(ViolationType.id == violation_type))
    if fine is None:
        logger.warning(
            "No catalog fine for violation type %r; using default fine %s",
            violation_type,
            settings.DEFAULT_FINE_AMOUNT,
        )
        return settings.DEFAULT_FINE_AMOUNT
    return fine


async def seed_violation_types(db: AsyncSession, overwrite: bool = False) -> int:
    """Insert the standard catalog. Existing rows are kept unless ``overwrite``.

    Returns the number of rows inserted or updated.
    """
    existing = {vt.id: vt for vt in await list_violation_types(db)}
    changed = 0
    for type_id, label, fine, icon, description in VIOLATION_TYPES:
        row = existing.get(type_id)
        if row is None:
            db.add(ViolationType(id=type_id, label=label, fine=fine, icon=icon, description=description))
            changed += 1
        elif overwrite:
            row.label, row.fine, row.icon, row.description = label, fine, icon, description
            changed += 1
    await db.commit()
    if changed:
        logger.info("Seeded %d violation types", changed)
    return changed
