"""User item error taxonomy."""
from __future__ import annotations

from useritems.object_store.adapter import ObjectNotFoundError, ObjectTooLargeError


class UserItemsError(Exception):
    pass


class QuotaExceededError(UserItemsError):
    """Admission rejected; nothing was written for the upload."""

    def __init__(self, message: str, limit: int, scope: str) -> None:
        super().__init__(message)
        self.limit = limit
        self.scope = scope


class UnsupportedEncodingError(UserItemsError):
    pass


class InvalidItemRequestError(UserItemsError, ValueError):
    pass


class UploadTooLargeError(InvalidItemRequestError):
    """Upload body larger than max_upload_bytes; rejected before any processing."""

    def __init__(self, message: str, size: int, limit: int) -> None:
        super().__init__(message)
        self.size = size
        self.limit = limit


class InternalError(UserItemsError):
    pass


class EmptyResultError(InternalError):
    """A plugin claimed the bytes but produced no variants."""


__all__ = [
    "EmptyResultError",
    "InternalError",
    "InvalidItemRequestError",
    "ObjectNotFoundError",
    "ObjectTooLargeError",
    "QuotaExceededError",
    "UnsupportedEncodingError",
    "UploadTooLargeError",
    "UserItemsError",
]
