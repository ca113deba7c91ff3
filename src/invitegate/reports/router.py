"""Report log endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.database import get_session
from invitegate.reports.schemas import ReportListResponse, ReportResponse
from invitegate.reports.service import list_reports

router = APIRouter(prefix="/api", tags=["Reports"])


@router.get("/reports", response_model=ReportListResponse, response_model_by_alias=True)
async def list_reports_endpoint(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ReportListResponse:
    reports = await list_reports(db)
    return ReportListResponse(reports=[ReportResponse.model_validate(r) for r in reports])
