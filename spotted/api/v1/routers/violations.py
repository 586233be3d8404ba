from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from spotted.core.database import aget_db
from spotted.schemas.violation import ViolationTypeOut
from spotted.services.catalog import compute_reward, list_violation_types

router = APIRouter(prefix="/violation-types", tags=["violation-types"])


@router.get("", response_model=List[ViolationTypeOut])
async def get_violation_types(db: AsyncSession = Depends(aget_db)):
    """Catalog of violation types with the reward each would earn. Public."""
    violation_types = await list_violation_types(db)
    return [
        ViolationTypeOut(
            id=vt.id,
            label=vt.label,
            fine=vt.fine,
            icon=vt.icon,
            description=vt.description,
            estimated_reward=float(compute_reward(vt.fine)),
        )
        for vt in violation_types
    ]
