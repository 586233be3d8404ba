from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from spotted.core.config import settings
from spotted.core.constants import ReportStatus
from spotted.core.database import aget_db
from spotted.core.security import get_current_user
from spotted.models.report import Report
from spotted.models.user import Profile
from spotted.models.violation import ViolationType
from spotted.schemas.dashboard import DashboardResponse, StatsResponse
from spotted.schemas.report import (
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    ReportCreate,
    ReportResponse,
    ReportUpdate,
)
from spotted.services import report_service

router = APIRouter(prefix="/reports", tags=["reports"])


def _report_response(report: Report, violation: Optional[ViolationType]) -> ReportResponse:
    response = ReportResponse.model_validate(report)
    if violation is not None:
        response.violation_label = violation.label
        response.violation_icon = violation.icon
    return response


@router.post("", status_code=201, response_model=ReportResponse)
async def submit_report(
    payload: ReportCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Submit a violation report; it always starts out pending"""
    report, violation = await report_service.submit_report(db, user.id, payload)
    return _report_response(report, violation)


@router.get("", response_model=List[ReportResponse])
async def get_user_reports(
    status: Optional[ReportStatus] = None,
    limit: int = Query(50, ge=1),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Get the requester's reports, newest first, with optional status filter"""
    limit = min(limit, settings.MAX_QUERY_LIMIT)
    rows = await report_service.list_reports(db, user.id, status=status, limit=limit)
    return [_report_response(report, violation) for report, violation in rows]


@router.post("/duplicate-check", response_model=DuplicateCheckResponse)
async def check_duplicate(
    payload: DuplicateCheckRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Advisory check for a near-duplicate report; never blocks submission"""
    is_duplicate = await report_service.check_duplicate(
        db,
        user.id,
        payload.plate_number,
        payload.violation_type,
        latitude=payload.latitude,
        longitude=payload.longitude,
        reported_at=payload.reported_at,
    )
    return DuplicateCheckResponse(is_duplicate=is_duplicate)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Counts and earnings by status, derived on every read"""
    return StatsResponse(**await report_service.get_stats(db, user.id))


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard_data(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Get dashboard overview data"""
    stats = await report_service.get_stats(db, user.id)
    recent = await report_service.list_reports(db, user.id, limit=5)
    return DashboardResponse(
        stats=StatsResponse(**stats),
        recent_reports=[_report_response(report, violation) for report, violation in recent],
    )


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report_details(
    report_id: str,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Get a single report owned by the requester"""
    report, violation = await report_service.get_report(db, user.id, report_id)
    return _report_response(report, violation)


@router.patch("/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: str,
    payload: ReportUpdate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Edit a report while it is still pending review"""
    changes = payload.model_dump(exclude_unset=True)
    report, violation = await report_service.update_report(db, user.id, report_id, changes)
    return _report_response(report, violation)
