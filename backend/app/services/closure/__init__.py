"""
Campaign Closure - Service Package

Closure workflow, transparency scoring and the audit document pipeline.
"""
from .exceptions import (
    ClosureServiceError,
    ValidationError,
    InvalidStateError,
    AlreadyClosedError,
    NotFoundError,
    DependencyError,
)
from .scoring import calculate_transparency_score, goal_percentage, score_label
from .repository import ClosureRepository
from .metrics_aggregator import ClosureMetricsAggregator
from .closure_service import ClosureService
from .document_renderer import AuditReportRenderer, content_hash
from .blob_store import S3BlobStore, audit_document_key
from .audit_document import AuditDocumentPipeline, DocumentOutcome, DocumentStage
from .document_jobs import DocumentJobRunner, run_document_job

__all__ = [
    "ClosureServiceError",
    "ValidationError",
    "InvalidStateError",
    "AlreadyClosedError",
    "NotFoundError",
    "DependencyError",
    "calculate_transparency_score",
    "goal_percentage",
    "score_label",
    "ClosureRepository",
    "ClosureMetricsAggregator",
    "ClosureService",
    "AuditReportRenderer",
    "content_hash",
    "S3BlobStore",
    "audit_document_key",
    "AuditDocumentPipeline",
    "DocumentOutcome",
    "DocumentStage",
    "DocumentJobRunner",
    "run_document_job",
]
