"""
Entitlements component - subscription tier, features, limits and usage.
"""

from .component import (
    EntitlementResolver,
    is_paid,
    load_config_from_rules,
    resolve_features,
    run,
)
from .models import FEATURE_FLAGS, EntitlementConfig, EntitlementSnapshot, ResolveInput
from .ports import AccountRepoPort, GrantRepoPort, SubscriptionRepoPort

__all__ = [
    # Service
    "EntitlementResolver",
    "run",
    # Pure functions
    "is_paid",
    "resolve_features",
    "load_config_from_rules",
    # Models
    "FEATURE_FLAGS",
    "EntitlementConfig",
    "EntitlementSnapshot",
    "ResolveInput",
    # Ports
    "AccountRepoPort",
    "GrantRepoPort",
    "SubscriptionRepoPort",
]
