"""
Audit endpoints: run, history, compare and the gated report.
"""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, status

from src.api.deps import (
    get_audit_service,
    get_current_account_id,
    get_entitlement_resolver,
    get_report_service,
)
from src.api.schemas import (
    AuditSummaryResponse,
    CompareResponse,
    RunAuditRequest,
    RunAuditResponse,
    UsageResponse,
)
from src.components.audits import AuditService, RunAuditInput
from src.components.entitlements import EntitlementResolver
from src.components.report_gate import LoadReportInput, ReportAccessService
from src.components.report_gate import run as run_load_report

router = APIRouter()


@router.post("", response_model=RunAuditResponse, status_code=status.HTTP_201_CREATED)
def run_audit(
    request: RunAuditRequest,
    account_id: UUID = Depends(get_current_account_id),
    service: AuditService = Depends(get_audit_service),
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
    idempotency_key: Annotated[str | None, Header(max_length=200)] = None,
) -> RunAuditResponse:
    """
    Score and store an audit for one page.

    A retry carrying the same Idempotency-Key returns the audit from the first
    call and is not counted twice.
    """
    result = service.run_audit(
        RunAuditInput(
            account_id=account_id,
            page_name=request.page_name,
            raw=request.inputs.to_raw(),
            page_url=request.page_url,
            audit_type=request.audit_type,
            request_key=idempotency_key,
            ai_insights=request.ai_insights,
            demographics=request.demographics,
        )
    )
    usage = resolver.resolve(account_id).usage
    audit = result.audit
    return RunAuditResponse(
        id=audit.id,
        score_total=audit.score_total,
        score_breakdown=audit.score_breakdown.model_dump(),
        is_pro_unlocked=audit.is_pro_unlocked,
        created=result.created,
        usage=UsageResponse(**usage.to_dict()),
    )


@router.get("", response_model=list[AuditSummaryResponse])
def list_audits(
    account_id: UUID = Depends(get_current_account_id),
    service: AuditService = Depends(get_audit_service),
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
) -> list[AuditSummaryResponse]:
    """Audit history inside the caller's plan window."""
    entitlement = resolver.resolve(account_id)
    return [
        AuditSummaryResponse(**summary.to_dict())
        for summary in service.list_history(account_id, entitlement)
    ]


@router.get("/compare", response_model=CompareResponse)
def compare_audits(
    a: UUID = Query(..., description="Base audit"),
    b: UUID = Query(..., description="Audit to compare against the base"),
    account_id: UUID = Depends(get_current_account_id),
    service: AuditService = Depends(get_audit_service),
) -> CompareResponse:
    return CompareResponse(**service.compare_audits(account_id, a, b).to_dict())


@router.get("/{audit_id}/report")
def get_report(
    audit_id: UUID,
    account_id: UUID = Depends(get_current_account_id),
    service: ReportAccessService = Depends(get_report_service),
) -> dict[str, Any]:
    payload = run_load_report(LoadReportInput(audit_id=audit_id, account_id=account_id), service)
    return payload.to_dict()
