"""
Support overrides: free audit grants and sticky audit unlocks.

All endpoints require a token with the admin role.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.deps import get_billing_service, require_admin
from src.api.schemas import GrantRequest, GrantResponse, SuccessResponse
from src.components.billing import BillingService

router = APIRouter()


@router.post("/grants", response_model=GrantResponse)
def grant_free_audit(
    request: GrantRequest,
    admin: str = Depends(require_admin),
    service: BillingService = Depends(get_billing_service),
) -> GrantResponse:
    try:
        result = service.grant_free_audit(request.account_id, request.month, granted_by=admin)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return GrantResponse(
        account_id=result.grant.account_id,
        grant_month=result.grant.grant_month,
        created=result.created,
    )


@router.delete("/grants", response_model=SuccessResponse)
def revoke_free_audit(
    account_id: UUID = Query(...),
    month: str | None = Query(default=None),
    admin: str = Depends(require_admin),
    service: BillingService = Depends(get_billing_service),
) -> SuccessResponse:
    try:
        removed = service.revoke_free_audit(account_id, month)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return SuccessResponse(success=removed)


@router.post("/audits/{audit_id}/unlock", response_model=SuccessResponse)
def unlock_audit(
    audit_id: UUID,
    admin: str = Depends(require_admin),
    service: BillingService = Depends(get_billing_service),
) -> SuccessResponse:
    service.unlock_audit(audit_id)
    return SuccessResponse(success=True)
