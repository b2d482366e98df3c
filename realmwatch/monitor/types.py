"""Domain types for the notification subsystem."""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_EMBED_COLOR = 0x95A5A6  # grey


class AlertMessage(BaseModel):
    """Normalised rich message ready for delivery to a channel."""

    title: str
    body: str = ""
    fields: dict[str, str] = Field(default_factory=dict)
    color: int = DEFAULT_EMBED_COLOR
    source_event_type: str = ""
    timestamp: float = Field(default_factory=time.time)
    raw: dict[str, Any] = Field(default_factory=dict)
