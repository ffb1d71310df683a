from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends

from src.api.deps import get_current_account_id, get_entitlement_resolver
from src.components.entitlements import EntitlementResolver, ResolveInput, run

router = APIRouter()


@router.get("/entitlements")
def get_my_entitlements(
    account_id: UUID = Depends(get_current_account_id),
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
) -> dict[str, Any]:
    """Current plan, features, limits and this month's usage."""
    return run(ResolveInput(account_id=account_id), resolver).to_dict()
