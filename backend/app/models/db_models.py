"""
Donation Platform - SQLAlchemy ORM Models
PostgreSQL database models for persistent storage
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, Float, DateTime, Text, JSON, ForeignKey, Boolean
from ..database import Base


# =============================================================================
# ENUMS FOR CAMPAIGN LIFECYCLE
# =============================================================================

class CampaignStatus(str, Enum):
    """Campaign lifecycle states. COMPLETED and REJECTED are terminal."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ClosureType(str, Enum):
    """How a campaign was closed."""
    GOAL_REACHED = "goal_reached"
    END_DATE = "end_date"
    MANUAL = "manual"


class DonationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class AlertStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class DocumentJobStatus(str, Enum):
    """Outbox states for audit document generation."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# COLLABORATOR TABLES
# =============================================================================
# Owned by the campaign/donation/organizer modules. Closure reads them and
# only ever writes campaigns.status.
# =============================================================================

class OrganizerDB(Base):
    """Campaign organizer (foundation, NGO or individual)."""
    __tablename__ = "organizers"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class CampaignDB(Base):
    """Fundraising campaign."""
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True)  # UUID
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    goal = Column(Float, nullable=False, default=0)
    organizer_id = Column(String(36), ForeignKey("organizers.id"), nullable=False, index=True)
    status = Column(String(30), nullable=False, default=CampaignStatus.DRAFT.value)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DonationDB(Base):
    """Single donation. Only COMPLETED donations count toward totals."""
    __tablename__ = "donations"

    id = Column(String(36), primary_key=True)  # UUID
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=False, index=True)
    donor_id = Column(String(36), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default=DonationStatus.PENDING.value)
    created_at = Column(DateTime, default=datetime.utcnow)


class ReceiptDB(Base):
    """Expense receipt uploaded by the organizer."""
    __tablename__ = "receipts"

    id = Column(String(36), primary_key=True)  # UUID
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=False, index=True)
    provider = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    total = Column(Float, nullable=False, default=0)
    date = Column(DateTime, nullable=False)
    document_url = Column(Text, nullable=True)  # Scanned invoice, empty when not attached
    created_at = Column(DateTime, default=datetime.utcnow)


class ActivityDB(Base):
    """Progress update posted on a campaign."""
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True)  # UUID
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class CampaignAlertDB(Base):
    """Donor- or system-raised alert on a campaign."""
    __tablename__ = "campaign_alerts"

    id = Column(String(36), primary_key=True)  # UUID
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=False, index=True)
    alert_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=AlertStatus.PENDING.value)
    severity = Column(String(20), nullable=False, default="medium")
    reported_by = Column(String(36), nullable=True)
    resolved_by = Column(String(36), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    resolved_at = Column(DateTime, nullable=True)


class CampaignContractDB(Base):
    """Signed organizer contract for a campaign."""
    __tablename__ = "campaign_contracts"

    id = Column(String(36), primary_key=True)  # UUID
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=False, index=True)
    organizer_id = Column(String(36), ForeignKey("organizers.id"), nullable=False)
    contract_pdf_url = Column(Text, nullable=True)
    contract_hash = Column(String(64), nullable=True)
    accepted_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# CAMPAIGN CLOSURE MODELS
# =============================================================================
# One report per campaign, for the campaign's lifetime.
# Immutable after insert except the one-time document back-fill.
# =============================================================================

class CampaignClosureReportDB(Base):
    """
    Frozen closure record for a campaign.

    🔒 Immutable after insert. report_pdf_url/report_hash are written once by
    the audit document pipeline and never again.
    """
    __tablename__ = "campaign_closure_reports"

    id = Column(String(36), primary_key=True)  # UUID
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=False, unique=True, index=True)

    # Closure request
    closure_type = Column(String(50), nullable=False)
    closure_reason = Column(Text, nullable=True)
    closed_by = Column(String(36), nullable=True)

    # Donations snapshot
    total_raised = Column(Float, nullable=False, default=0)
    total_donors = Column(Integer, nullable=False, default=0)
    total_donations = Column(Integer, nullable=False, default=0)
    campaign_goal = Column(Float, nullable=False)
    goal_percentage = Column(Float, nullable=False, default=0)

    # Expenses snapshot
    total_expenses = Column(Float, nullable=False, default=0)
    total_receipts = Column(Integer, nullable=False, default=0)
    receipts_with_documents = Column(Integer, nullable=False, default=0)

    # Activity snapshot
    total_activities = Column(Integer, nullable=False, default=0)
    average_days_between_activities = Column(Float, nullable=False, default=30)

    # Score
    transparency_score = Column(Float, nullable=False, default=0)
    transparency_breakdown = Column(JSON, nullable=True)

    # Alerts snapshot
    alerts_count = Column(Integer, nullable=False, default=0)
    alerts_resolved = Column(Integer, nullable=False, default=0)
    has_contract = Column(Boolean, nullable=False, default=False)

    # Audit document (back-filled once)
    report_pdf_url = Column(Text, nullable=True)
    report_hash = Column(String(64), nullable=True)  # SHA256 hex of document bytes

    # Timestamps
    closed_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class ClosureDocumentJobDB(Base):
    """
    Outbox row for audit document generation.
    Committed in the same transaction as the closure report so a restart
    cannot drop pending document work.
    """
    __tablename__ = "closure_document_jobs"

    id = Column(String(36), primary_key=True)  # UUID
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=False, index=True)
    report_id = Column(String(36), ForeignKey("campaign_closure_reports.id"), nullable=False)

    # Scheduling
    scheduled_for = Column(DateTime, nullable=False)  # Next eligible run
    executed_at = Column(DateTime, nullable=True)     # Last run

    # Status
    status = Column(String(20), default=DocumentJobStatus.PENDING.value, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
