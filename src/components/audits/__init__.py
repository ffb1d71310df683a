"""
Audit runner component - audit creation, history and comparison.
"""

from .component import AuditService, build_audit, data_availability, run, score_deltas
from .models import AuditComparison, AuditSummary, RunAuditInput, RunAuditOutput
from .ports import AuditRepoPort

__all__ = [
    "AuditService",
    "run",
    "build_audit",
    "data_availability",
    "score_deltas",
    "AuditComparison",
    "AuditSummary",
    "RunAuditInput",
    "RunAuditOutput",
    "AuditRepoPort",
]
