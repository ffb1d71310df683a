"""
Share link endpoints for report owners.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from src.api.deps import get_current_account_id, get_share_manager
from src.api.schemas import ShareResponse, SuccessResponse
from src.components.share_links import (
    CreateShareInput,
    RevokeShareInput,
    ShareLinkManager,
    run_create,
    run_revoke,
)

router = APIRouter()


@router.post("/{audit_id}/share", response_model=ShareResponse)
def create_share(
    audit_id: UUID,
    account_id: UUID = Depends(get_current_account_id),
    manager: ShareLinkManager = Depends(get_share_manager),
) -> ShareResponse:
    """Publish the report. Calling again returns the existing link."""
    result = run_create(CreateShareInput(audit_id=audit_id, account_id=account_id), manager)
    return ShareResponse(share_url=result.share_url, share_slug=result.share_slug)


@router.delete("/{audit_id}/share", response_model=SuccessResponse)
def revoke_share(
    audit_id: UUID,
    account_id: UUID = Depends(get_current_account_id),
    manager: ShareLinkManager = Depends(get_share_manager),
) -> SuccessResponse:
    """Make the report private. ``success`` is false when it was not shared."""
    removed = run_revoke(RevokeShareInput(audit_id=audit_id, account_id=account_id), manager)
    return SuccessResponse(success=removed)
