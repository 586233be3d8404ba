from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from spotted.core.constants import ReportStatus


class _Coordinates(BaseModel):
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be supplied together")
        return self


class ReportCreate(_Coordinates):
    violation_type: str = Field(..., min_length=1, max_length=32)
    location_text: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, max_length=2048)
    plate_number: Optional[str] = Field(None, max_length=20)
    reported_at: Optional[datetime] = None
    # Validated but ignored: new reports are always pending
    status: Optional[ReportStatus] = None


class ReportUpdate(_Coordinates):
    """Fields an owner may change while the report is pending."""

    model_config = ConfigDict(extra="forbid")

    location_text: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, max_length=2048)
    plate_number: Optional[str] = Field(None, max_length=20)


class ReportResponse(BaseModel):
    id: str
    user_id: str
    violation_type: str
    violation_label: Optional[str] = None
    violation_icon: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_text: Optional[str] = None
    photo_url: Optional[str] = None
    plate_number: Optional[str] = None
    status: ReportStatus
    rejection_reason: Optional[str] = None
    fine_amount: int
    reward_amount: float
    paid_out: bool
    paid_out_at: Optional[datetime] = None
    reported_at: datetime
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DuplicateCheckRequest(_Coordinates):
    plate_number: str = Field(..., min_length=1, max_length=20)
    violation_type: str = Field(..., min_length=1, max_length=32)
    # Reference time for the window; defaults to now
    reported_at: Optional[datetime] = None


class DuplicateCheckResponse(BaseModel):
    is_duplicate: bool
