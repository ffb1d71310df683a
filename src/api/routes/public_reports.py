"""
Public (unauthenticated) report view by share slug.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path

from src.api.deps import get_share_manager
from src.components.share_links import FetchPublicInput, ShareLinkManager, run_fetch_public

router = APIRouter()


@router.get("/reports/{slug}")
def get_public_report(
    slug: str = Path(..., min_length=1, max_length=64),
    manager: ShareLinkManager = Depends(get_share_manager),
) -> dict[str, Any]:
    """Full report for a published slug. Each call counts one view."""
    return run_fetch_public(FetchPublicInput(slug=slug), manager).to_dict()
