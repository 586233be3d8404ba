import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, case, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from spotted.core import policies
from spotted.core.config import settings
from spotted.core.constants import CENTS, Operation, ReportStatus, Resource
from spotted.core.exceptions import RecordNotFound, ValidationFailed
from spotted.models.base import utcnow
from spotted.models.report import Report
from spotted.models.violation import ViolationType
from spotted.schemas.report import ReportCreate
from spotted.services.catalog import compute_reward, resolve_fine

logger = logging.getLogger(__name__)

ReportRow = Tuple[Report, Optional[ViolationType]]

UPDATABLE_FIELDS = ("latitude", "longitude", "location_text", "photo_url", "plate_number")


def _visible_reports(requester_id: Optional[str]):
    """Own reports joined with their catalog entry."""
    stmt = select(Report, ViolationType).join(
        ViolationType, Report.violation_type == ViolationType.id, isouter=True
    )
    return policies.scope(stmt, Resource.REPORT, requester_id, entity=Report)


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS, rounding=ROUND_HALF_UP)


async def submit_report(db: AsyncSession, requester_id: str, data: ReportCreate) -> ReportRow:
    """Persist a new pending report owned by the requester.

    No duplicate check happens here; callers are expected to run
    ``check_duplicate`` first.
    """
    violation_type = data.violation_type
    fine = await resolve_fine(db, violation_type)

    report = Report(
        user_id=requester_id,
        violation_type=violation_type,
        latitude=data.latitude,
        longitude=data.longitude,
        location_text=data.location_text,
        photo_url=data.photo_url,
        plate_number=data.plate_number,
        status=ReportStatus.PENDING.value,
        fine_amount=fine,
        reward_amount=compute_reward(fine),
        reported_at=data.reported_at or utcnow(),
    )
    policies.authorize(Resource.REPORT, Operation.INSERT, requester_id, report.user_id)

    db.add(report)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationFailed(
            "violation_type", f"Unknown violation type '{violation_type}'", "UNKNOWN_REFERENCE"
        )

    logger.info("Report submitted by %s: %s fine=%s", requester_id, violation_type, fine)
    return await get_report(db, requester_id, report.id)


async def list_reports(
    db: AsyncSession,
    requester_id: str,
    status: Optional[ReportStatus] = None,
    limit: int = 50,
) -> List[ReportRow]:
    query = _visible_reports(requester_id)
    if status is not None:
        query = query.where(Report.status == status.value)
    query = query.order_by(desc(Report.reported_at)).limit(limit)

    result = await db.execute(query)
    return [(report, violation) for report, violation in result.all()]


async def get_report(db: AsyncSession, requester_id: str, report_id: str) -> ReportRow:
    """Fetch one visible report. Other identities' reports look missing."""
    query = _visible_reports(requester_id).where(Report.id == report_id)
    result = await db.execute(query)
    row = result.first()
    if row is None:
        raise RecordNotFound("Report")
    report, violation = row
    await db.refresh(report)
    return report, violation


async def update_report(
    db: AsyncSession, requester_id: str, report_id: str, changes: dict
) -> ReportRow:
    report, violation = await get_report(db, requester_id, report_id)
    policies.authorize(
        Resource.REPORT, Operation.UPDATE, requester_id, report.user_id, report.status
    )

    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            raise ValidationFailed(field, f"Field '{field}' cannot be changed")
        setattr(report, field, value)

    if (report.latitude is None) != (report.longitude is None):
        raise ValidationFailed("latitude", "latitude and longitude must be supplied together")

    await db.commit()
    await db.refresh(report)
    return report, violation


async def check_duplicate(
    db: AsyncSession,
    requester_id: str,
    plate_number: str,
    violation_type: str,
    latitude: Optional[Decimal] = None,
    longitude: Optional[Decimal] = None,
    reported_at: Optional[datetime] = None,
) -> bool:
    """Whether a near-duplicate of this report is already on record.

    Near-duplicate: same upper-cased plate and violation type, reported less
    than DUPLICATE_WINDOW_HOURS apart and, when coordinates are given, within
    DUPLICATE_COORD_TOLERANCE degrees on each axis. The tolerance is a flat
    lat/lon box (~100 m at mid latitudes), not a geodesic distance: it
    narrows towards the poles and does not wrap at the antimeridian.
    """
    reference = reported_at or utcnow()
    window = timedelta(hours=settings.DUPLICATE_WINDOW_HOURS)

    conditions = [
        Report.plate_number == plate_number.strip().upper(),
        Report.violation_type == violation_type,
        Report.reported_at > reference - window,
        Report.reported_at < reference + window,
    ]
    if latitude is not None and longitude is not None:
        tolerance = Decimal(str(settings.DUPLICATE_COORD_TOLERANCE))
        lat, lng = Decimal(str(latitude)), Decimal(str(longitude))
        conditions += [
            Report.latitude > lat - tolerance,
            Report.latitude < lat + tolerance,
            Report.longitude > lng - tolerance,
            Report.longitude < lng + tolerance,
        ]

    query = policies.scope(
        select(Report.id).where(and_(*conditions)).limit(1),
        Resource.REPORT,
        requester_id,
        entity=Report,
    )
    return (await db.scalar(query)) is not None


async def get_stats(db: AsyncSession, requester_id: str) -> dict:
    """Aggregate summary of the requester's reports, derived on every read."""

    def _count(status: ReportStatus):
        return func.count(case((Report.status == status.value, 1)))

    def _reward_sum(status: ReportStatus):
        return func.coalesce(
            func.sum(case((Report.status == status.value, Report.reward_amount), else_=0)), 0
        )

    query = policies.scope(
        select(
            func.count(Report.id),
            _count(ReportStatus.APPROVED),
            _count(ReportStatus.PENDING),
            _count(ReportStatus.REJECTED),
            _reward_sum(ReportStatus.APPROVED),
            _reward_sum(ReportStatus.PENDING),
        ),
        Resource.REPORT,
        requester_id,
        entity=Report,
    )
    result = await db.execute(query)
    total, approved, pending, rejected, earned, pending_earnings = result.one()

    if total:
        success_rate = (Decimal(approved) / Decimal(total) * 100).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
    else:
        success_rate = Decimal("0")

    return {
        "user_id": requester_id,
        "total_reports": total,
        "approved_reports": approved,
        "pending_reports": pending,
        "rejected_reports": rejected,
        "total_earned": _money(earned),
        "pending_earnings": _money(pending_earnings),
        "success_rate": success_rate,
    }
