"""
Domain error taxonomy for the audit core.

Every error carries a stable ``code`` so the HTTP shell can map it to a
response without inspecting messages. ``NotFoundError`` is also used for
resources owned by another account, so callers cannot tell whether it exists.
"""

from __future__ import annotations

from typing import Any


class AuditCoreError(Exception):
    """Base class for audit core errors."""

    code = "AUDIT_CORE_ERROR"

    def context(self) -> dict[str, Any]:
        """Extra fields to surface alongside the error code."""
        return {}


class AuthExpiredError(AuditCoreError):
    """Caller credential is stale; refresh and retry once."""

    code = "AUTH_EXPIRED"

    def __init__(self, reason: str = "Session expired") -> None:
        self.reason = reason
        super().__init__(reason)


class NotFoundError(AuditCoreError):
    """Referenced audit, report or slug does not exist for this caller."""

    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource") -> None:
        self.resource = resource
        super().__init__(f"{resource} not found")


class AccountNotFoundError(NotFoundError):
    """No account exists for the supplied identifier."""

    def __init__(self, account_id: object) -> None:
        self.account_id = account_id
        super().__init__("Account")


class ProRequiredError(AuditCoreError):
    """Action needs a paid subscription, a free grant or a sticky unlock."""

    code = "PRO_REQUIRED"

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Pro subscription required for {action}")


class LimitReachedError(AuditCoreError):
    """Monthly audit allowance is exhausted."""

    code = "LIMIT_REACHED"

    def __init__(self, used: int, limit: int) -> None:
        self.used = used
        self.limit = limit
        self.remaining = 0
        super().__init__(f"Monthly audit limit reached ({used}/{limit})")

    def context(self) -> dict[str, Any]:
        return {"used": self.used, "limit": self.limit, "remaining": self.remaining}


class ConflictError(AuditCoreError):
    """Concurrent create lost a race or slug allocation was exhausted."""

    code = "CONFLICT"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class SlugTakenError(Exception):
    """Persistence signal: the share slug is already assigned to another report."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"Share slug already in use: {slug}")
