"""
Closure Service

Synchronous closure workflow for a single campaign:

    Validating → Aggregating → Scoring → Persisting → StatusTransition → Done

Report insert, campaign status update and document job insert are committed
in one transaction. The audit document is produced later by the document job
runner and back-filled onto the report.

AT-MOST-ONE REPORT:
- exists check up front gives the common case a clean AlreadyClosedError
- the unique index on campaign_closure_reports.campaign_id settles races;
  IntegrityError on commit is translated to AlreadyClosedError
"""
import logging
from datetime import datetime
from typing import Optional, Union
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.closure import CampaignInfo, ClosureReport, PublicAuditReport
from app.models.db_models import CampaignStatus, ClosureType
from ..campaign.directory import (
    CampaignDirectory,
    CampaignNotFoundError,
    ContractRegistry,
    OrganizerDirectory,
    OrganizerNotFoundError,
)
from ..campaign.status_machine import CampaignStatusMachine, CampaignStatusTransitionError
from .exceptions import (
    AlreadyClosedError,
    DependencyError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .metrics_aggregator import ClosureMetricsAggregator
from .repository import ClosureRepository
from .scoring import calculate_transparency_score, goal_percentage


logger = logging.getLogger(__name__)

MIN_MANUAL_REASON_LENGTH = 10
UNKNOWN_ORGANIZER = "Unknown"


class ClosureService:
    """
    Closes campaigns and serves closure reports.

    Usage:
        service = ClosureService(db)
        report = service.close_campaign(campaign_id, ClosureType.MANUAL, reason, closed_by=user_id)
        background_tasks.add_task(run_document_job, report.id)
    """

    def __init__(self, db: Session, now_fn=datetime.utcnow):
        self.db = db
        self.repository = ClosureRepository(db)
        self.campaigns = CampaignDirectory(db)
        self.organizers = OrganizerDirectory(db)
        self.contracts = ContractRegistry(db)
        self.aggregator = ClosureMetricsAggregator(self.repository, self.contracts)
        self.state_machine = CampaignStatusMachine()
        self.now_fn = now_fn

    # =========================================================================
    # CLOSE
    # =========================================================================

    def close_campaign(
        self,
        campaign_id: str,
        closure_type: Union[ClosureType, str],
        reason: Optional[str] = None,
        closed_by: Optional[str] = None,
    ) -> ClosureReport:
        """
        Close a campaign and persist its closure report.

        The document job is committed alongside the report and shares its id.

        Raises:
            AlreadyClosedError: Campaign already has a closure report
            NotFoundError: Campaign does not exist
            InvalidStateError: Campaign is not active or paused
            ValidationError: Bad closure type or manual reason too short
            DependencyError: Organizer or a hard metric source failed
        """
        closure_type = self._parse_closure_type(closure_type)

        # 1. Idempotency
        if self.repository.exists_closure_report(campaign_id):
            raise AlreadyClosedError(f"Campaign {campaign_id} is already closed")

        # 2. Campaign + status precondition
        try:
            campaign = self.campaigns.get_campaign_for_closure(campaign_id)
        except CampaignNotFoundError as e:
            raise NotFoundError(str(e)) from e

        if not self.state_machine.can_close(campaign.status):
            raise InvalidStateError(
                f"Campaign {campaign_id} cannot be closed from status '{campaign.status}'"
            )

        # 3. Manual reason (stored as validated)
        if reason is not None:
            reason = reason.strip() or None
        if closure_type == ClosureType.MANUAL:
            if reason is None or len(reason) < MIN_MANUAL_REASON_LENGTH:
                raise ValidationError(
                    f"Manual closure requires a reason of at least {MIN_MANUAL_REASON_LENGTH} characters"
                )

        # 4. Organizer (hard dependency)
        try:
            organizer_name = self.organizers.get_organizer_name(campaign.organizer_id)
        except OrganizerNotFoundError as e:
            raise DependencyError(f"Failed to resolve organizer for campaign {campaign_id}: {e}") from e

        # 5-6. Aggregate + score
        closed_at = self.now_fn()
        metrics = self.aggregator.aggregate(campaign, organizer_name)
        breakdown = calculate_transparency_score(metrics, self._closed_before_end_date(campaign, closed_at))

        report = ClosureReport(
            id=str(uuid4()),
            campaign_id=campaign_id,
            closure_type=closure_type,
            closure_reason=reason,
            closed_by=closed_by,
            total_raised=metrics.total_raised,
            total_donors=metrics.total_donors,
            total_donations=metrics.total_donations,
            campaign_goal=metrics.campaign_goal,
            goal_percentage=goal_percentage(metrics.total_raised, metrics.campaign_goal),
            total_expenses=metrics.total_expenses,
            total_receipts=metrics.total_receipts,
            receipts_with_documents=metrics.receipts_with_documents,
            total_activities=metrics.total_activities,
            average_days_between_activities=metrics.average_days_between_activities,
            transparency_score=breakdown.total(),
            transparency_breakdown=breakdown,
            alerts_count=metrics.alerts_count,
            alerts_resolved=metrics.alerts_resolved,
            has_contract=metrics.has_contract,
            closed_at=closed_at,
            created_at=closed_at,
        )

        # 7-9. Report, status and document job in one transaction
        try:
            self.repository.add_closure_report(report)
            self.campaigns.update_status(campaign_id, CampaignStatus.COMPLETED)
            self.repository.add_document_job(
                job_id=report.id,
                campaign_id=campaign_id,
                report_id=report.id,
                scheduled_for=closed_at,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Concurrent closure detected for campaign {campaign_id}: {e.orig}")
            raise AlreadyClosedError(f"Campaign {campaign_id} is already closed") from e
        except CampaignStatusTransitionError as e:
            self.db.rollback()
            raise InvalidStateError(str(e)) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Campaign {campaign_id} closed ({closure_type.value}) by {closed_by or 'system'}: "
            f"score={report.transparency_score:.1f}, raised={report.total_raised:.2f}"
        )
        return report

    @staticmethod
    def _parse_closure_type(closure_type: Union[ClosureType, str]) -> ClosureType:
        if isinstance(closure_type, ClosureType):
            return closure_type
        try:
            return ClosureType(closure_type)
        except ValueError:
            raise ValidationError(f"Invalid closure type: {closure_type}")

    @staticmethod
    def _closed_before_end_date(campaign: CampaignInfo, closed_at: datetime) -> bool:
        if campaign.end_date is None:
            return False
        return closed_at < campaign.end_date

    # =========================================================================
    # READ
    # =========================================================================

    def get_closure_report(self, campaign_id: str) -> ClosureReport:
        """
        Raises:
            NotFoundError: No closure report for the campaign
        """
        report = self.repository.get_closure_report(campaign_id)
        if report is None:
            raise NotFoundError(f"Closure report not found for campaign {campaign_id}")
        return report

    def get_public_audit_report(self, campaign_id: str) -> PublicAuditReport:
        """
        Donor-facing projection of the closure report.

        Organizer name is best-effort and falls back to "Unknown".

        Raises:
            NotFoundError: No closure report, or the campaign is gone
        """
        report = self.get_closure_report(campaign_id)

        try:
            campaign = self.campaigns.get_campaign_for_closure(campaign_id)
        except CampaignNotFoundError as e:
            raise NotFoundError(str(e)) from e

        try:
            organizer_name = self.organizers.get_organizer_name(campaign.organizer_id)
        except OrganizerNotFoundError:
            organizer_name = UNKNOWN_ORGANIZER

        return PublicAuditReport(
            campaign_id=campaign_id,
            campaign_title=campaign.title,
            organizer_name=organizer_name,
            closed_at=report.closed_at,
            total_raised=report.total_raised,
            campaign_goal=report.campaign_goal,
            goal_percentage=report.goal_percentage,
            total_donors=report.total_donors,
            total_expenses=report.total_expenses,
            transparency_score=report.transparency_score,
            report_pdf_url=report.report_pdf_url,
        )

    def has_closure_report(self, campaign_id: str) -> bool:
        return self.repository.exists_closure_report(campaign_id)
