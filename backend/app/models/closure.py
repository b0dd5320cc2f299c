"""
Campaign Closure - Domain Models

Plain dataclasses passed between the aggregator, the scoring engine, the
report builder and the audit document pipeline. ORM rows never leave the
repository layer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .db_models import ClosureType


# =============================================================================
# COLLABORATOR VIEWS
# =============================================================================

@dataclass
class CampaignInfo:
    """Minimal campaign view needed for closure."""
    id: str
    title: str
    goal: float
    organizer_id: str
    status: str
    start_date: datetime
    end_date: datetime


@dataclass
class DonationMetrics:
    total_raised: float = 0.0
    total_donors: int = 0
    total_donations: int = 0


@dataclass
class ReceiptMetrics:
    total_expenses: float = 0.0
    total_receipts: int = 0
    receipts_with_documents: int = 0


@dataclass
class ActivityMetrics:
    total_activities: int = 0
    average_days_between_activities: float = 30.0


@dataclass
class AlertMetrics:
    alerts_count: int = 0
    alerts_resolved: int = 0


# =============================================================================
# SCORING
# =============================================================================

@dataclass
class ClosureMetrics:
    """Everything the scoring engine needs, gathered once per closure."""
    # Campaign
    campaign_goal: float
    campaign_start: datetime
    campaign_end: datetime
    has_contract: bool
    campaign_title: str
    organizer_name: str
    organizer_id: str

    # Donations
    total_raised: float = 0.0
    total_donors: int = 0
    total_donations: int = 0

    # Receipts
    total_expenses: float = 0.0
    total_receipts: int = 0
    receipts_with_documents: int = 0

    # Activities
    total_activities: int = 0
    average_days_between_activities: float = 30.0

    # Alerts
    alerts_count: int = 0
    alerts_resolved: int = 0


@dataclass
class TransparencyBreakdown:
    """Six-component transparency score."""
    documentation_score: float = 0.0     # 0-30 pts
    activity_score: float = 0.0          # 0-25 pts
    goal_progress_score: float = 0.0     # 0-20 pts
    timeliness_score: float = 0.0        # 0-15 pts
    alerts_deduction_score: float = 0.0  # 0 to -10 pts
    bonus_score: float = 0.0             # 0-10 pts

    def total(self) -> float:
        """Sum of all components clamped to [0, 100]."""
        total = (
            self.documentation_score
            + self.activity_score
            + self.goal_progress_score
            + self.timeliness_score
            + self.alerts_deduction_score
            + self.bonus_score
        )
        if total < 0:
            return 0.0
        if total > 100:
            return 100.0
        return total

    def to_dict(self) -> Dict[str, float]:
        return {
            "documentation_score": self.documentation_score,
            "activity_score": self.activity_score,
            "goal_progress_score": self.goal_progress_score,
            "timeliness_score": self.timeliness_score,
            "alerts_deduction_score": self.alerts_deduction_score,
            "bonus_score": self.bonus_score,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TransparencyBreakdown":
        data = data or {}
        return cls(**{k: float(data.get(k, 0.0)) for k in cls().to_dict()})


# =============================================================================
# CLOSURE REPORT
# =============================================================================

@dataclass
class ClosureReport:
    """
    Immutable closure record.

    Document fields stay None until the audit document pipeline
    back-fills them, or forever if it fails.
    """
    id: str
    campaign_id: str
    closure_type: ClosureType
    closure_reason: Optional[str]
    closed_by: Optional[str]

    total_raised: float
    total_donors: int
    total_donations: int
    campaign_goal: float
    goal_percentage: float

    total_expenses: float
    total_receipts: int
    receipts_with_documents: int

    total_activities: int
    average_days_between_activities: float

    transparency_score: float
    transparency_breakdown: TransparencyBreakdown

    alerts_count: int
    alerts_resolved: int
    has_contract: bool

    closed_at: datetime
    created_at: datetime

    report_pdf_url: Optional[str] = None
    report_hash: Optional[str] = None

    @property
    def has_document(self) -> bool:
        return bool(self.report_pdf_url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "closure_type": self.closure_type.value,
            "closure_reason": self.closure_reason,
            "closed_by": self.closed_by,
            "total_raised": self.total_raised,
            "total_donors": self.total_donors,
            "total_donations": self.total_donations,
            "campaign_goal": self.campaign_goal,
            "goal_percentage": self.goal_percentage,
            "total_expenses": self.total_expenses,
            "total_receipts": self.total_receipts,
            "receipts_with_documents": self.receipts_with_documents,
            "total_activities": self.total_activities,
            "average_days_between_activities": self.average_days_between_activities,
            "transparency_score": self.transparency_score,
            "transparency_breakdown": self.transparency_breakdown.to_dict(),
            "alerts_count": self.alerts_count,
            "alerts_resolved": self.alerts_resolved,
            "has_contract": self.has_contract,
            "report_pdf_url": self.report_pdf_url,
            "report_hash": self.report_hash,
            "closed_at": self.closed_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class PublicAuditReport:
    """Donor-facing projection. No reason, no closer, no raw breakdown."""
    campaign_id: str
    campaign_title: str
    organizer_name: str
    closed_at: datetime
    total_raised: float
    campaign_goal: float
    goal_percentage: float
    total_donors: int
    total_expenses: float
    transparency_score: float
    report_pdf_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "campaign_id": self.campaign_id,
            "campaign_title": self.campaign_title,
            "organizer_name": self.organizer_name,
            "closed_at": self.closed_at.isoformat(),
            "total_raised": self.total_raised,
            "campaign_goal": self.campaign_goal,
            "goal_percentage": self.goal_percentage,
            "total_donors": self.total_donors,
            "total_expenses": self.total_expenses,
            "transparency_score": self.transparency_score,
            "report_pdf_url": self.report_pdf_url,
        }


# =============================================================================
# AUDIT DOCUMENT
# =============================================================================

@dataclass
class ReceiptSummary:
    provider: str
    name: str
    total: float
    date: Optional[datetime]
    has_document: bool


@dataclass
class ActivitySummary:
    title: str
    type: str
    date: Optional[datetime]


@dataclass
class AuditReportData:
    """Input to the document renderer."""
    campaign_id: str
    campaign_title: str
    campaign_goal: float
    organizer_name: str
    start_date: datetime
    end_date: datetime
    closed_at: datetime
    closure_type: ClosureType
    closure_reason: Optional[str]

    # Financial
    total_raised: float
    goal_percentage: float
    total_donors: int
    total_donations: int

    # Expenses
    total_expenses: float
    total_receipts: int
    receipts_with_documents: int

    # Activities
    total_activities: int

    # Transparency
    transparency_score: float
    transparency_breakdown: TransparencyBreakdown

    receipts: List[ReceiptSummary] = field(default_factory=list)
    activities: List[ActivitySummary] = field(default_factory=list)
