"""Domain error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations

from typing import Any, Dict


class StorysiteError(Exception):
    """Base class for expected, user-facing failures."""

    code = "error"
    status_code = 400

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_payload(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class NotFoundError(StorysiteError):
    """The target does not resolve for the caller's scope.

    Raised both for true absence and for rows owned by another account so
    that callers cannot probe for other tenants' content.
    """

    code = "not_found"
    status_code = 404


class ForbiddenError(StorysiteError):
    code = "forbidden"
    status_code = 403


class ValidationError(StorysiteError):
    code = "validation_error"
    status_code = 400


class ConflictError(StorysiteError):
    code = "conflict"
    status_code = 409


class QuotaExceededError(StorysiteError):
    """Raised when an upload would go past the account's tier limit."""

    code = "quota_exceeded"
    status_code = 403

    def __init__(self, *, tier: str, content_count: int, content_limit: int) -> None:
        super().__init__(
            f"Content limit reached ({content_count}/{content_limit} on the {tier} tier). "
            "Upgrade your plan to upload more."
        )
        self.tier = tier
        self.content_count = content_count
        self.content_limit = content_limit

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload.update(
            {
                "tier": self.tier,
                "content_count": self.content_count,
                "content_limit": self.content_limit,
            }
        )
        return payload


class StorageProviderError(StorysiteError):
    """Raised when the blob-storage provider cannot fulfil a request."""

    code = "storage_provider_error"
    status_code = 502
