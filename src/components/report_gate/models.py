"""
Report gate models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

DEFAULT_LOCKED_SECTIONS: tuple[str, ...] = (
    "detailed_metrics",
    "all_recommendations",
    "posts_analysis",
    "demographics",
    "ai_insights",
    "pdf_export",
    "share_link",
)


@dataclass(frozen=True)
class GateConfig:
    """Report gating configuration from rules."""

    free_recommendation_limit: int = 2
    preview_fields: tuple[str, ...] = ("engagementRate",)
    locked_sections: tuple[str, ...] = DEFAULT_LOCKED_SECTIONS


@dataclass(frozen=True)
class ReportPayload:
    """
    Caller-visible report.

    In the free view, withheld keys are absent from ``data`` rather than
    present with a null value; a null in the full view means "not computed".
    """

    has_pro_access: bool
    data: dict[str, Any] = field(default_factory=dict)
    locked_sections: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.data,
            "has_pro_access": self.has_pro_access,
            "locked_sections": list(self.locked_sections),
        }


@dataclass(frozen=True)
class LoadReportInput:
    audit_id: UUID
    account_id: UUID
