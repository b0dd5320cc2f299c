"""
Closure Repository

All SQL for the closure subsystem:
- closure report persistence (insert once, document back-fill once)
- metric queries over donations, receipts, activities, alerts
- line-item summaries for the audit document
- document job outbox rows

Writes are flushed, never committed: the service owns the transaction.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, distinct, func, or_
from sqlalchemy.orm import Session

from app.models.closure import (
    ActivityMetrics,
    ActivitySummary,
    AlertMetrics,
    ClosureReport,
    DonationMetrics,
    ReceiptMetrics,
    ReceiptSummary,
    TransparencyBreakdown,
)
from app.models.db_models import (
    ActivityDB,
    AlertStatus,
    CampaignAlertDB,
    CampaignClosureReportDB,
    ClosureDocumentJobDB,
    ClosureType,
    DocumentJobStatus,
    DonationDB,
    DonationStatus,
    ReceiptDB,
)

# Used when fewer than two activities exist or the cadence cannot be computed
DEFAULT_DAYS_BETWEEN_ACTIVITIES = 30.0

SECONDS_PER_DAY = 86400.0


class ClosureRepository:
    """SQLAlchemy-backed storage for closure reports and closure metrics."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # CLOSURE REPORTS
    # =========================================================================

    def exists_closure_report(self, campaign_id: str) -> bool:
        count = self.db.query(CampaignClosureReportDB).filter(
            CampaignClosureReportDB.campaign_id == campaign_id
        ).count()
        return count > 0

    def get_closure_report(self, campaign_id: str) -> Optional[ClosureReport]:
        row = self.db.query(CampaignClosureReportDB).filter(
            CampaignClosureReportDB.campaign_id == campaign_id
        ).first()
        return self._to_entity(row) if row else None

    def add_closure_report(self, report: ClosureReport) -> None:
        """
        Stage a new closure report.

        The unique index on campaign_id makes this insert-if-absent: a second
        report for the same campaign fails with IntegrityError at flush/commit.
        """
        row = CampaignClosureReportDB(
            id=report.id,
            campaign_id=report.campaign_id,
            closure_type=report.closure_type.value,
            closure_reason=report.closure_reason,
            closed_by=report.closed_by,
            total_raised=report.total_raised,
            total_donors=report.total_donors,
            total_donations=report.total_donations,
            campaign_goal=report.campaign_goal,
            goal_percentage=report.goal_percentage,
            total_expenses=report.total_expenses,
            total_receipts=report.total_receipts,
            receipts_with_documents=report.receipts_with_documents,
            total_activities=report.total_activities,
            average_days_between_activities=report.average_days_between_activities,
            transparency_score=report.transparency_score,
            transparency_breakdown=report.transparency_breakdown.to_dict(),
            alerts_count=report.alerts_count,
            alerts_resolved=report.alerts_resolved,
            has_contract=report.has_contract,
            report_pdf_url=None,
            report_hash=None,
            closed_at=report.closed_at,
            created_at=report.created_at,
        )
        self.db.add(row)
        self.db.flush()

    def update_report_document(self, campaign_id: str, pdf_url: str, report_hash: str) -> bool:
        """
        Back-fill document URL and hash.

        Only applies while the report has no document yet, so the fields are
        written at most once. Returns True if a row was updated.
        """
        updated = self.db.query(CampaignClosureReportDB).filter(
            CampaignClosureReportDB.campaign_id == campaign_id,
            CampaignClosureReportDB.report_pdf_url.is_(None),
        ).update(
            {
                CampaignClosureReportDB.report_pdf_url: pdf_url,
                CampaignClosureReportDB.report_hash: report_hash,
            },
            synchronize_session="fetch",
        )
        return updated > 0

    @staticmethod
    def _to_entity(row: CampaignClosureReportDB) -> ClosureReport:
        return ClosureReport(
            id=row.id,
            campaign_id=row.campaign_id,
            closure_type=ClosureType(row.closure_type),
            closure_reason=row.closure_reason,
            closed_by=row.closed_by,
            total_raised=row.total_raised or 0.0,
            total_donors=row.total_donors or 0,
            total_donations=row.total_donations or 0,
            campaign_goal=row.campaign_goal or 0.0,
            goal_percentage=row.goal_percentage or 0.0,
            total_expenses=row.total_expenses or 0.0,
            total_receipts=row.total_receipts or 0,
            receipts_with_documents=row.receipts_with_documents or 0,
            total_activities=row.total_activities or 0,
            average_days_between_activities=row.average_days_between_activities,
            transparency_score=row.transparency_score or 0.0,
            transparency_breakdown=TransparencyBreakdown.from_dict(row.transparency_breakdown),
            alerts_count=row.alerts_count or 0,
            alerts_resolved=row.alerts_resolved or 0,
            has_contract=bool(row.has_contract),
            report_pdf_url=row.report_pdf_url,
            report_hash=row.report_hash,
            closed_at=row.closed_at,
            created_at=row.created_at,
        )

    # =========================================================================
    # METRICS
    # =========================================================================

    def get_donation_metrics(self, campaign_id: str) -> DonationMetrics:
        total_raised, total_donors, total_donations = self.db.query(
            func.coalesce(func.sum(DonationDB.amount), 0),
            func.count(distinct(DonationDB.donor_id)),
            func.count(DonationDB.id),
        ).filter(
            DonationDB.campaign_id == campaign_id,
            DonationDB.status == DonationStatus.COMPLETED.value,
        ).one()

        return DonationMetrics(
            total_raised=float(total_raised or 0),
            total_donors=int(total_donors or 0),
            total_donations=int(total_donations or 0),
        )

    def get_receipt_metrics(self, campaign_id: str) -> ReceiptMetrics:
        total_expenses, total_receipts = self.db.query(
            func.coalesce(func.sum(ReceiptDB.total), 0),
            func.count(ReceiptDB.id),
        ).filter(ReceiptDB.campaign_id == campaign_id).one()

        with_documents = self.db.query(ReceiptDB).filter(
            ReceiptDB.campaign_id == campaign_id,
            ReceiptDB.document_url.isnot(None),
            ReceiptDB.document_url != "",
        ).count()

        return ReceiptMetrics(
            total_expenses=float(total_expenses or 0),
            total_receipts=int(total_receipts or 0),
            receipts_with_documents=with_documents,
        )

    def get_activity_metrics(self, campaign_id: str) -> ActivityMetrics:
        dates = [
            row[0] for row in self.db.query(ActivityDB.date).filter(
                ActivityDB.campaign_id == campaign_id
            ).order_by(ActivityDB.date.asc()).all()
        ]

        return ActivityMetrics(
            total_activities=len(dates),
            average_days_between_activities=average_days_between(dates),
        )

    def get_alert_metrics(self, campaign_id: str) -> AlertMetrics:
        # Savepoint keeps a failed alerts query from poisoning the closure transaction
        with self.db.begin_nested():
            alerts_count = self.db.query(CampaignAlertDB).filter(
                CampaignAlertDB.campaign_id == campaign_id
            ).count()
            alerts_resolved = self.db.query(CampaignAlertDB).filter(
                CampaignAlertDB.campaign_id == campaign_id,
                CampaignAlertDB.status == AlertStatus.RESOLVED.value,
            ).count()
        return AlertMetrics(alerts_count=alerts_count, alerts_resolved=alerts_resolved)

    # =========================================================================
    # AUDIT DOCUMENT SUMMARIES
    # =========================================================================

    def get_receipt_summaries(self, campaign_id: str) -> List[ReceiptSummary]:
        rows = self.db.query(ReceiptDB).filter(
            ReceiptDB.campaign_id == campaign_id
        ).order_by(ReceiptDB.date.desc()).all()

        return [
            ReceiptSummary(
                provider=r.provider,
                name=r.name,
                total=r.total or 0.0,
                date=r.date,
                has_document=bool(r.document_url),
            )
            for r in rows
        ]

    def get_activity_summaries(self, campaign_id: str) -> List[ActivitySummary]:
        rows = self.db.query(ActivityDB).filter(
            ActivityDB.campaign_id == campaign_id
        ).order_by(ActivityDB.date.desc()).all()

        return [ActivitySummary(title=r.title, type=r.type, date=r.date) for r in rows]

    # =========================================================================
    # DOCUMENT JOB OUTBOX
    # =========================================================================

    def add_document_job(self, job_id: str, campaign_id: str, report_id: str, scheduled_for: datetime) -> None:
        self.db.add(ClosureDocumentJobDB(
            id=job_id,
            campaign_id=campaign_id,
            report_id=report_id,
            scheduled_for=scheduled_for,
            status=DocumentJobStatus.PENDING.value,
            attempts=0,
        ))
        self.db.flush()

    def get_document_job(self, job_id: str) -> Optional[ClosureDocumentJobDB]:
        return self.db.query(ClosureDocumentJobDB).filter(ClosureDocumentJobDB.id == job_id).first()

    def get_due_document_jobs(
        self,
        now: datetime,
        lease_cutoff: datetime,
        max_attempts: int,
        limit: int = 50,
    ) -> List[ClosureDocumentJobDB]:
        return self.db.query(ClosureDocumentJobDB).filter(
            claimable_job_clause(now, lease_cutoff, max_attempts)
        ).order_by(ClosureDocumentJobDB.scheduled_for.asc()).limit(limit).all()

    def fail_expired_document_jobs(self, lease_cutoff: datetime, max_attempts: int) -> int:
        """
        Mark running jobs as failed once their lease expired on the last
        allowed attempt. Returns the number of jobs failed.
        """
        return self.db.query(ClosureDocumentJobDB).filter(
            ClosureDocumentJobDB.status == DocumentJobStatus.RUNNING.value,
            ClosureDocumentJobDB.executed_at <= lease_cutoff,
            ClosureDocumentJobDB.attempts >= max_attempts,
        ).update(
            {
                ClosureDocumentJobDB.status: DocumentJobStatus.FAILED.value,
                ClosureDocumentJobDB.error_message: "Lease expired on final attempt",
            },
            synchronize_session=False,
        )


def claimable_job_clause(now: datetime, lease_cutoff: datetime, max_attempts: int):
    """
    Jobs a worker may claim: pending and due, or running with a lease older
    than lease_cutoff (the worker died mid-attempt). Attempts stay bounded.
    """
    return and_(
        ClosureDocumentJobDB.attempts < max_attempts,
        or_(
            and_(
                ClosureDocumentJobDB.status == DocumentJobStatus.PENDING.value,
                ClosureDocumentJobDB.scheduled_for <= now,
            ),
            and_(
                ClosureDocumentJobDB.status == DocumentJobStatus.RUNNING.value,
                ClosureDocumentJobDB.executed_at <= lease_cutoff,
            ),
        ),
    )


def average_days_between(dates: List[datetime]) -> float:
    """
    Mean gap in days between consecutive dates (sorted ascending first).

    Falls back to DEFAULT_DAYS_BETWEEN_ACTIVITIES with fewer than two dates.
    """
    clean = sorted(d for d in dates if d is not None)
    if len(clean) < 2:
        return DEFAULT_DAYS_BETWEEN_ACTIVITIES

    gaps = [
        (later - earlier).total_seconds() / SECONDS_PER_DAY
        for earlier, later in zip(clean, clean[1:])
    ]
    return sum(gaps) / len(gaps)
