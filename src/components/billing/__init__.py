"""
Billing component - payment events, free grants and audit unlocks.
"""

from .component import BillingService, normalize_month
from .models import GrantResult, PaymentEvent, PaymentEventResult, PaymentEventType
from .ports import AuditUnlockPort, GrantWriterPort, SubscriptionWriterPort

__all__ = [
    "BillingService",
    "normalize_month",
    "GrantResult",
    "PaymentEvent",
    "PaymentEventResult",
    "PaymentEventType",
    "AuditUnlockPort",
    "GrantWriterPort",
    "SubscriptionWriterPort",
]
