"""Donation Platform - Data Models"""
from .db_models import CampaignStatus, ClosureType
from .closure import (
    # Collaborator views
    CampaignInfo, DonationMetrics, ReceiptMetrics, ActivityMetrics, AlertMetrics,
    # Scoring
    ClosureMetrics, TransparencyBreakdown,
    # Reports
    ClosureReport, PublicAuditReport,
    # Audit document
    ReceiptSummary, ActivitySummary, AuditReportData,
)

__all__ = [
    "CampaignStatus", "ClosureType",
    "CampaignInfo", "DonationMetrics", "ReceiptMetrics", "ActivityMetrics", "AlertMetrics",
    "ClosureMetrics", "TransparencyBreakdown",
    "ClosureReport", "PublicAuditReport",
    "ReceiptSummary", "ActivitySummary", "AuditReportData",
]
