"""
Scheduler API Routes

Internal endpoints for system-automatic tasks.
Drains the closure document outbox: jobs left pending by a restart and
failed attempts whose backoff has elapsed.
"""
import os

from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.closure import DocumentJobRunner


router = APIRouter(prefix="/internal", tags=["scheduler"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "scheduler-internal-key-change-in-production")


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


# =============================================================================
# SCHEDULER ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.post("/document-jobs/run", response_model=dict)
async def run_document_jobs(
    limit: int = 50,
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Run every due closure document job.

    System-automatic - each job renders, hashes and uploads one audit
    document, then back-fills the closure report.
    """
    runner = DocumentJobRunner(db)

    return runner.run_due_jobs(limit=limit)
