"""
Audit Document Pipeline

Runs after a closure has been committed, outside the request/response cycle:
1. Fetch receipt and activity summaries (best-effort, empty on failure)
2. Build AuditReportData from the frozen report
3. Render → bytes
4. SHA-256 over the bytes
5. Upload to the blob store
6. Back-fill report_pdf_url / report_hash (once)

Never raises. Every failure is logged and reported back as a DocumentOutcome
so the job runner can decide whether to retry.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from app.models.closure import AuditReportData, CampaignInfo, ClosureReport
from .blob_store import audit_document_key
from .document_renderer import content_hash


logger = logging.getLogger(__name__)


class DocumentStage(str, Enum):
    """Pipeline stage reached by an attempt."""
    RENDER = "render"
    UPLOAD = "upload"
    UPDATE = "update"
    DONE = "done"


@dataclass
class DocumentOutcome:
    """Result of one pipeline attempt."""
    success: bool
    stage: Optional[DocumentStage]
    url: Optional[str] = None
    report_hash: Optional[str] = None
    error: Optional[str] = None


def _utc_timestamp() -> int:
    return int(datetime.now(timezone.utc).timestamp())


class AuditDocumentPipeline:
    """
    Render, hash, upload and attach the audit document for a closure report.

    Usage:
        pipeline = AuditDocumentPipeline(repository, renderer, blob_store)
        outcome = pipeline.run(report, campaign_info, organizer_name)
    """

    def __init__(
        self,
        repository,
        renderer,
        blob_store,
        timestamp_fn: Callable[[], int] = _utc_timestamp,
    ):
        self.repository = repository
        self.renderer = renderer
        self.blob_store = blob_store
        self.timestamp_fn = timestamp_fn

    def build_report_data(
        self,
        report: ClosureReport,
        campaign: CampaignInfo,
        organizer_name: str,
    ) -> AuditReportData:
        campaign_id = report.campaign_id

        try:
            receipts = self.repository.get_receipt_summaries(campaign_id)
        except Exception as e:
            logger.warning(f"Receipt summaries unavailable for campaign {campaign_id}: {e}")
            receipts = []

        try:
            activities = self.repository.get_activity_summaries(campaign_id)
        except Exception as e:
            logger.warning(f"Activity summaries unavailable for campaign {campaign_id}: {e}")
            activities = []

        return AuditReportData(
            campaign_id=campaign_id,
            campaign_title=campaign.title,
            campaign_goal=report.campaign_goal,
            organizer_name=organizer_name,
            start_date=campaign.start_date,
            end_date=campaign.end_date,
            closed_at=report.closed_at,
            closure_type=report.closure_type,
            closure_reason=report.closure_reason,
            total_raised=report.total_raised,
            goal_percentage=report.goal_percentage,
            total_donors=report.total_donors,
            total_donations=report.total_donations,
            total_expenses=report.total_expenses,
            total_receipts=report.total_receipts,
            receipts_with_documents=report.receipts_with_documents,
            total_activities=report.total_activities,
            transparency_score=report.transparency_score,
            transparency_breakdown=report.transparency_breakdown,
            receipts=receipts,
            activities=activities,
        )

    def _stored_outcome(self, campaign_id: str) -> Optional[DocumentOutcome]:
        """Outcome for a report that already carries a document, else None."""
        stored = self.repository.get_closure_report(campaign_id)
        if stored is None or not stored.has_document:
            return None
        return DocumentOutcome(
            success=True, stage=DocumentStage.DONE, url=stored.report_pdf_url, report_hash=stored.report_hash
        )

    def run(self, report: ClosureReport, campaign: CampaignInfo, organizer_name: str) -> DocumentOutcome:
        campaign_id = report.campaign_id

        existing = self._stored_outcome(campaign_id)
        if existing is not None:
            logger.info(f"Closure report for campaign {campaign_id} already has a document, skipping upload")
            return existing

        data = self.build_report_data(report, campaign, organizer_name)

        try:
            content = self.renderer.render(data)
        except Exception as e:
            logger.error(f"Failed to generate audit document for campaign {campaign_id}: {e}")
            return DocumentOutcome(success=False, stage=DocumentStage.RENDER, error=str(e))

        digest = content_hash(content)
        key = audit_document_key(campaign_id, self.timestamp_fn(), getattr(self.renderer, "extension", "bin"))

        try:
            url = self.blob_store.upload(
                content,
                key,
                content_type=getattr(self.renderer, "content_type", "application/octet-stream"),
            )
        except Exception as e:
            logger.error(f"Failed to upload audit document for campaign {campaign_id}: {e}")
            return DocumentOutcome(success=False, stage=DocumentStage.UPLOAD, report_hash=digest, error=str(e))

        try:
            updated = self.repository.update_report_document(campaign_id, url, digest)
        except Exception as e:
            logger.error(f"Failed to update audit document URL for campaign {campaign_id}: {e}")
            return DocumentOutcome(
                success=False, stage=DocumentStage.UPDATE, url=url, report_hash=digest, error=str(e)
            )

        if not updated:
            logger.warning(
                f"Closure report for campaign {campaign_id} got a document concurrently, uploaded {url} is unused"
            )
            return self._stored_outcome(campaign_id) or DocumentOutcome(
                success=False, stage=DocumentStage.UPDATE, error=f"Closure report not found for campaign {campaign_id}"
            )

        logger.info(f"Audit document attached for campaign {campaign_id}: {url} (sha256={digest})")
        return DocumentOutcome(success=True, stage=DocumentStage.DONE, url=url, report_hash=digest)
