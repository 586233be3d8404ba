from typing import Optional

from pydantic import BaseModel, ConfigDict


class ViolationTypeOut(BaseModel):
    id: str
    label: str
    fine: int
    icon: str
    description: Optional[str] = None
    estimated_reward: float

    model_config = ConfigDict(from_attributes=True)
