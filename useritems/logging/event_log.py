"""Lightweight EventLog entry helper reused across services."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from useritems.config import runtime_config

event_logger = logging.getLogger("useritems.events")


class EventLogEntry(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str
    asset_type: str
    asset_id: str
    user_name: str
    user_id: Optional[str] = None
    request_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = Field(default_factory=dict)


EventLogger = Callable[[EventLogEntry], None]


def default_event_logger(entry: EventLogEntry) -> None:
    """Emit the entry as one JSON line on the ``useritems.events`` logger."""
    payload = entry.model_dump(mode="json")
    payload["env"] = runtime_config.get_env() or "dev"
    event_logger.info(json.dumps(payload, sort_keys=True, default=str))


class InMemoryEventLogger:
    """Collects entries instead of logging them (tests)."""

    def __init__(self) -> None:
        self.entries: List[EventLogEntry] = []

    def __call__(self, entry: EventLogEntry) -> None:
        self.entries.append(entry)

    def of_type(self, event_type: str) -> List[EventLogEntry]:
        return [e for e in self.entries if e.event_type == event_type]
