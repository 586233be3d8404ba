from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from spotted.core.constants import ALLOWED_STATUS_TRANSITIONS, ReportStatus
from spotted.core.exceptions import InvalidStateChange
from spotted.models.base import Base, TimestampMixin, UTCDateTime, new_uuid, utcnow

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in ReportStatus)


class Report(Base, TimestampMixin):
    __tablename__ = "reports"
    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_reports_status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    violation_type: Mapped[str] = mapped_column(
        String(32), ForeignKey("violation_types.id"), nullable=False
    )

    # Location
    latitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 8))
    longitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(11, 8))
    location_text: Mapped[Optional[str]] = mapped_column(Text)  # "5th Ave & 9th St"

    # Evidence
    photo_url: Mapped[Optional[str]] = mapped_column(Text)
    plate_number: Mapped[Optional[str]] = mapped_column(String(20), index=True)

    # Review
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ReportStatus.PENDING.value, index=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)

    # Financial, frozen at submission
    fine_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    paid_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    paid_out_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)

    reported_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)

    @validates("plate_number")
    def _normalise_plate(self, key, value):
        if value is None:
            return None
        value = value.strip().upper()
        return value or None

    @validates("status")
    def _check_status_transition(self, key, value):
        try:
            new_status = ReportStatus(value)
        except ValueError:
            raise InvalidStateChange(f"Unknown report status {value!r}")
        current = self.status
        if current is None:
            if new_status != ReportStatus.PENDING:
                raise InvalidStateChange("New reports always start as pending")
            return new_status.value
        current_status = ReportStatus(current)
        if new_status == current_status:
            return new_status.value
        if new_status not in ALLOWED_STATUS_TRANSITIONS[current_status]:
            raise InvalidStateChange(
                f"Illegal status transition {current_status.value} -> {new_status.value}"
            )
        if new_status != ReportStatus.REJECTED:
            self.rejection_reason = None
        if self.reviewed_at is None:
            self.reviewed_at = utcnow()
        return new_status.value

    @validates("rejection_reason")
    def _check_rejection_reason(self, key, value):
        # Set the status to rejected before giving a reason
        if value is not None and self.status != ReportStatus.REJECTED.value:
            raise InvalidStateChange("A rejection reason needs status 'rejected'")
        return value

    def __repr__(self):
        return f"<Report {self.id} {self.violation_type} ({self.status})>"


Index("ix_reports_reported_at_desc", Report.reported_at.desc())
