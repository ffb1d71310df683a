"""
Report gate component - entitlement-gated report payloads.
"""

from .component import (
    ReportAccessService,
    build_preview,
    free_payload,
    free_recommendations,
    full_payload,
    gate,
    has_effective_access,
    load_config_from_rules,
    run,
)
from .models import DEFAULT_LOCKED_SECTIONS, GateConfig, LoadReportInput, ReportPayload
from .ports import AuditReaderPort, EntitlementPort, ShareReaderPort

__all__ = [
    # Service
    "ReportAccessService",
    "run",
    # Pure functions
    "gate",
    "has_effective_access",
    "free_recommendations",
    "build_preview",
    "free_payload",
    "full_payload",
    "load_config_from_rules",
    # Models
    "DEFAULT_LOCKED_SECTIONS",
    "GateConfig",
    "LoadReportInput",
    "ReportPayload",
    # Ports
    "AuditReaderPort",
    "EntitlementPort",
    "ShareReaderPort",
]
