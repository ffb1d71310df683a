"""
Share link component - public report links.
"""

from .component import (
    SLUG_ALPHABET,
    ShareLinkManager,
    build_share_url,
    generate_slug,
    load_config_from_rules,
    run_create,
    run_fetch_public,
    run_revoke,
)
from .models import (
    CreateShareInput,
    FetchPublicInput,
    RevokeShareInput,
    ShareConfig,
    ShareLinkResult,
)
from .ports import ShareRepoPort

__all__ = [
    # Service
    "ShareLinkManager",
    "run_create",
    "run_revoke",
    "run_fetch_public",
    # Pure functions
    "build_share_url",
    "generate_slug",
    "load_config_from_rules",
    "SLUG_ALPHABET",
    # Models
    "CreateShareInput",
    "FetchPublicInput",
    "RevokeShareInput",
    "ShareConfig",
    "ShareLinkResult",
    # Ports
    "ShareRepoPort",
]
