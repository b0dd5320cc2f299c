"""
Donation Platform - Campaign Closure API Router

Admin endpoints close a campaign and read its full closure report.
Public endpoints expose the donor-facing audit report and its document.

The audit document is generated after the response is sent; clients poll
/audit or /audit/download until report_pdf_url is filled in.
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..database import get_db
from ..models.db_models import ClosureType
from ..services.closure import (
    AlreadyClosedError,
    ClosureService,
    ClosureServiceError,
    DependencyError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    run_document_job,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", tags=["closure"])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class CloseCampaignRequest(BaseModel):
    """Request to close a campaign."""
    closure_type: ClosureType = Field(..., description="goal_reached, end_date or manual")
    reason: Optional[str] = Field(None, description="Required for manual closures (min 10 characters)")


class ClosureStatusResponse(BaseModel):
    """Whether a campaign has been closed."""
    campaign_id: str
    closed: bool


# =============================================================================
# ERROR MAPPING
# =============================================================================

ERROR_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    InvalidStateError: 409,
    AlreadyClosedError: 409,
    DependencyError: 502,
}


def to_http_exception(error: ClosureServiceError) -> HTTPException:
    """Map a closure error to the matching HTTP status."""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


# =============================================================================
# ADMIN ENDPOINTS
# =============================================================================

@router.post("/{campaign_id}/close", response_model=dict)
async def close_campaign(
    campaign_id: str,
    request: CloseCampaignRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    """
    Close a campaign and return its closure report.

    The audit document fields are empty in the response; the document is
    generated in the background.
    """
    service = ClosureService(db)

    try:
        report = service.close_campaign(
            campaign_id=campaign_id,
            closure_type=request.closure_type,
            reason=request.reason,
            closed_by=admin.user_id,
        )
    except ClosureServiceError as e:
        raise to_http_exception(e)

    # Document job id matches the report id
    background_tasks.add_task(run_document_job, report.id)

    return {
        "message": "Campaign closed successfully",
        "report": report.to_dict(),
    }


@router.get("/{campaign_id}/closure-report", response_model=dict)
async def get_closure_report(
    campaign_id: str,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_admin),
):
    """Full closure report, including reason, closer and score breakdown."""
    service = ClosureService(db)

    try:
        report = service.get_closure_report(campaign_id)
    except ClosureServiceError as e:
        raise to_http_exception(e)

    return report.to_dict()


# =============================================================================
# PUBLIC ENDPOINTS
# =============================================================================

@router.get("/{campaign_id}/closure-status", response_model=ClosureStatusResponse)
async def get_closure_status(
    campaign_id: str,
    db: Session = Depends(get_db),
):
    """Check whether a campaign has a closure report."""
    service = ClosureService(db)
    return ClosureStatusResponse(campaign_id=campaign_id, closed=service.has_closure_report(campaign_id))


@router.get("/{campaign_id}/audit", response_model=dict)
async def get_public_audit_report(
    campaign_id: str,
    db: Session = Depends(get_db),
):
    """Donor-facing audit report for a closed campaign."""
    service = ClosureService(db)

    try:
        audit = service.get_public_audit_report(campaign_id)
    except ClosureServiceError as e:
        raise to_http_exception(e)

    return audit.to_dict()


@router.get("/{campaign_id}/audit/download")
async def download_audit_document(
    campaign_id: str,
    db: Session = Depends(get_db),
):
    """
    Redirect to the stored audit document.

    404 while the document is still being generated (or if generation failed).
    """
    service = ClosureService(db)

    try:
        report = service.get_closure_report(campaign_id)
    except ClosureServiceError as e:
        raise to_http_exception(e)

    if not report.has_document:
        raise HTTPException(status_code=404, detail="Audit document is still being generated")

    return RedirectResponse(url=report.report_pdf_url, status_code=302)
