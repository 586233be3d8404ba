from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from spotted.core.constants import PayoutMethod
from spotted.models.base import Base, TimestampMixin, UTCDateTime, new_uuid, utcnow


class AuthAccount(Base):
    """Credential record owned by the authentication provider."""

    __tablename__ = "auth_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<AuthAccount {self.email}>"


class Profile(Base, TimestampMixin):
    """One row per authenticated identity; id equals the auth subject."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String(36), ForeignKey("auth_accounts.id", ondelete="CASCADE"), primary_key=True
    )

    # Contact details
    email: Mapped[Optional[str]] = mapped_column(String(255))
    full_name: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(20))

    # Payout preferences
    bank_last4: Mapped[Optional[str]] = mapped_column(String(4))
    payout_method: Mapped[str] = mapped_column(
        String(50), nullable=False, default=PayoutMethod.DIRECT_DEPOSIT.value
    )

    # Notification toggles
    notifications_report_updates: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notifications_payment_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notifications_weekly_digest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notifications_new_features: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Profile {self.email}>"
