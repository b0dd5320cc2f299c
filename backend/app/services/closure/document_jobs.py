"""
Closure Document Jobs

Durable outbox runner for the audit document pipeline.

A job row is committed in the same transaction as its closure report.
It is kicked once right after the closure response is sent, and the
internal scheduler endpoint drains anything still pending (e.g. after a
restart). A running job whose lease expired is claimable again, since its
worker died before recording the attempt. Each job gets a bounded number of attempts with exponential
backoff; once exhausted the report keeps empty document fields for good.
"""

import logging
import os
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.models.db_models import ClosureDocumentJobDB, DocumentJobStatus
from ..campaign.directory import CampaignDirectory, OrganizerDirectory
from .audit_document import AuditDocumentPipeline, DocumentOutcome, DocumentStage
from .blob_store import S3BlobStore
from .document_renderer import AuditReportRenderer
from .repository import ClosureRepository, claimable_job_clause


logger = logging.getLogger(__name__)

DOCUMENT_JOB_MAX_ATTEMPTS = int(os.getenv("DOCUMENT_JOB_MAX_ATTEMPTS", "3"))
DOCUMENT_JOB_BACKOFF_SECONDS = int(os.getenv("DOCUMENT_JOB_BACKOFF_SECONDS", "60"))
DOCUMENT_JOB_LEASE_SECONDS = int(os.getenv("DOCUMENT_JOB_LEASE_SECONDS", "600"))


def backoff_delay(attempts: int, base_seconds: int = DOCUMENT_JOB_BACKOFF_SECONDS) -> timedelta:
    """Delay before the next attempt: base * 2^(attempts-1)."""
    return timedelta(seconds=base_seconds * (2 ** max(attempts - 1, 0)))


class DocumentJobRunner:
    """
    Claims and executes closure document jobs.

    Usage:
        runner = DocumentJobRunner(db)
        runner.run_job(job_id)
        runner.run_due_jobs()
    """

    def __init__(
        self,
        db: Session,
        renderer=None,
        blob_store=None,
        max_attempts: int = DOCUMENT_JOB_MAX_ATTEMPTS,
        backoff_seconds: int = DOCUMENT_JOB_BACKOFF_SECONDS,
        lease_seconds: int = DOCUMENT_JOB_LEASE_SECONDS,
        now_fn: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.repository = ClosureRepository(db)
        self.campaigns = CampaignDirectory(db)
        self.organizers = OrganizerDirectory(db)
        self.pipeline = AuditDocumentPipeline(
            self.repository,
            renderer or AuditReportRenderer(),
            blob_store or S3BlobStore(),
        )
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.lease_seconds = lease_seconds
        self.now_fn = now_fn

    # =========================================================================
    # CLAIM
    # =========================================================================

    def _lease_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(seconds=self.lease_seconds)

    def _claim(self, job_id: str) -> Optional[ClosureDocumentJobDB]:
        """
        Move a due pending job, or a running job with an expired lease, to
        running. Conditional update so two workers cannot both claim the
        same job.
        """
        now = self.now_fn()
        claimed = self.db.query(ClosureDocumentJobDB).filter(
            ClosureDocumentJobDB.id == job_id,
            claimable_job_clause(now, self._lease_cutoff(now), self.max_attempts),
        ).update(
            {
                ClosureDocumentJobDB.status: DocumentJobStatus.RUNNING.value,
                ClosureDocumentJobDB.attempts: ClosureDocumentJobDB.attempts + 1,
                ClosureDocumentJobDB.executed_at: now,
            },
            synchronize_session=False,
        )
        self.db.commit()

        if not claimed:
            return None
        return self.repository.get_document_job(job_id)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def run_job(self, job_id: str) -> Optional[DocumentOutcome]:
        """
        Execute one job attempt. Never raises.

        Returns:
            DocumentOutcome, or None if the job was not claimable
        """
        try:
            job = self._claim(job_id)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to claim document job {job_id}: {e}")
            return None

        if job is None:
            logger.info(f"Document job {job_id} not claimable, skipping")
            return None

        campaign_id = job.campaign_id
        try:
            outcome = self._execute(job)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Document job {job_id} crashed for campaign {campaign_id}: {e}")
            outcome = DocumentOutcome(success=False, stage=None, error=str(e))

        self._record(job_id, outcome)
        return outcome

    def _execute(self, job: ClosureDocumentJobDB) -> DocumentOutcome:
        report = self.repository.get_closure_report(job.campaign_id)
        if report is None:
            raise LookupError(f"Closure report not found for campaign {job.campaign_id}")

        if report.has_document:
            logger.info(f"Closure report for campaign {job.campaign_id} already has a document")
            return DocumentOutcome(
                success=True, stage=DocumentStage.DONE, url=report.report_pdf_url, report_hash=report.report_hash
            )

        campaign = self.campaigns.get_campaign_for_closure(job.campaign_id)
        organizer_name = self.organizers.get_organizer_name(campaign.organizer_id)

        outcome = self.pipeline.run(report, campaign, organizer_name)
        if outcome.success:
            self.db.commit()
        else:
            self.db.rollback()
        return outcome

    def _record(self, job_id: str, outcome: DocumentOutcome) -> None:
        """Persist job status after an attempt."""
        try:
            job = self.repository.get_document_job(job_id)
            if job is None:
                return

            if outcome.success:
                job.status = DocumentJobStatus.COMPLETED.value
                job.error_message = None
            elif job.attempts >= self.max_attempts:
                job.status = DocumentJobStatus.FAILED.value
                job.error_message = outcome.error
                logger.error(
                    f"Document job {job_id} for campaign {job.campaign_id} failed after "
                    f"{job.attempts} attempts: {outcome.error}"
                )
            else:
                job.status = DocumentJobStatus.PENDING.value
                job.error_message = outcome.error
                job.scheduled_for = self.now_fn() + backoff_delay(job.attempts, self.backoff_seconds)
                logger.warning(
                    f"Document job {job_id} attempt {job.attempts} failed, retrying at {job.scheduled_for}"
                )

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to record outcome for document job {job_id}: {e}")

    def run_due_jobs(self, limit: int = 50) -> Dict[str, Any]:
        """
        Fail jobs whose lease expired on their last attempt, then run every
        due pending job and every job with an expired lease.

        Returns:
            Summary dict for the scheduler endpoint
        """
        started_at = self.now_fn()
        lease_cutoff = self._lease_cutoff(started_at)

        expired = self.repository.fail_expired_document_jobs(lease_cutoff, self.max_attempts)
        self.db.commit()
        if expired:
            logger.error(f"{expired} document job(s) failed: lease expired on final attempt")

        job_ids = [
            job.id
            for job in self.repository.get_due_document_jobs(
                started_at, lease_cutoff, self.max_attempts, limit=limit
            )
        ]

        results = {"succeeded": 0, "failed": 0, "skipped": 0}
        for job_id in job_ids:
            outcome = self.run_job(job_id)
            if outcome is None:
                results["skipped"] += 1
            elif outcome.success:
                results["succeeded"] += 1
            else:
                results["failed"] += 1

        logger.info(f"Document jobs run: {len(job_ids)} due, {results}")
        return {
            "task": "closure_document_jobs",
            "run_date": started_at.isoformat(),
            "due": len(job_ids),
            "expired": expired,
            **results,
        }


def run_document_job(job_id: str, session_factory=None) -> None:
    """
    Background entry point. Opens its own session so it is independent of
    the request that enqueued the job.
    """
    if session_factory is None:
        from app.database import SessionLocal
        session_factory = SessionLocal

    db = session_factory()
    try:
        DocumentJobRunner(db).run_job(job_id)
    finally:
        db.close()
