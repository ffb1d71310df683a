"""
Share link models.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class ShareConfig:
    """Share link configuration from rules."""

    base_url: str = "https://pagelyzer.io"
    path_prefix: str = "/r"
    slug_length: int = 8
    max_slug_attempts: int = 5


@dataclass(frozen=True)
class ShareLinkResult:
    """Outcome of a create call. ``created`` is False when an existing link was returned."""

    share_url: str
    share_slug: str
    created: bool = True


@dataclass(frozen=True)
class CreateShareInput:
    audit_id: UUID
    account_id: UUID


@dataclass(frozen=True)
class RevokeShareInput:
    audit_id: UUID
    account_id: UUID


@dataclass(frozen=True)
class FetchPublicInput:
    slug: str
