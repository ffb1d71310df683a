"""
Normalized payment events from the gateway bridge.

The bridge verifies gateway signatures and forwards events with the shared
X-Webhook-Secret header.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.deps import get_billing_service, verify_webhook_secret
from src.api.schemas import PaymentEventRequest, PaymentEventResponse
from src.components.billing import BillingService, PaymentEvent

router = APIRouter()


@router.post(
    "/events",
    response_model=PaymentEventResponse,
    dependencies=[Depends(verify_webhook_secret)],
)
def receive_payment_event(
    request: PaymentEventRequest,
    service: BillingService = Depends(get_billing_service),
) -> PaymentEventResponse:
    try:
        result = service.apply_payment_event(PaymentEvent(**request.model_dump()))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    subscription = result.subscription
    return PaymentEventResponse(
        applied=result.applied,
        subscription_id=subscription.id if subscription else None,
        status=subscription.status if subscription else None,
        detail=result.detail or None,
    )
