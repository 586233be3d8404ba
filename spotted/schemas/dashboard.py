from typing import List

from pydantic import BaseModel

from spotted.schemas.report import ReportResponse


class StatsResponse(BaseModel):
    user_id: str
    total_reports: int
    approved_reports: int
    pending_reports: int
    rejected_reports: int
    total_earned: float
    pending_earnings: float
    success_rate: float


class DashboardResponse(BaseModel):
    stats: StatsResponse
    recent_reports: List[ReportResponse]
