"""Caller identity for user item requests and the FastAPI header dependency."""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Header, HTTPException

# Both values become key segments, so path separators are never allowed.
VALID_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]+$")


def _validate_segment(label: str, value: Optional[str]) -> str:
    if not value:
        raise ValueError(f"{label} is required")
    if value in {".", ".."} or not VALID_SEGMENT_PATTERN.match(value):
        raise ValueError(f"{label} must match pattern {VALID_SEGMENT_PATTERN.pattern}, got: {value}")
    return value


@dataclass
class UserContext:
    user_name: str
    user_id: str
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        self.user_name = _validate_segment("user_name", self.user_name)
        self.user_id = _validate_segment("user_id", self.user_id)
        if not self.request_id:
            raise ValueError("request_id is required")


async def get_user_context(
    header_user_name: Optional[str] = Header(default=None, alias="X-User-Name"),
    header_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    header_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> UserContext:
    """Build the caller's UserContext from headers set by the auth boundary."""
    if not header_user_name or not header_user_id:
        raise HTTPException(status_code=401, detail="X-User-Name and X-User-Id headers are required")
    try:
        return UserContext(
            user_name=header_user_name,
            user_id=header_user_id,
            request_id=header_request_id or uuid.uuid4().hex,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
