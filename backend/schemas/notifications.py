"""In-app notification payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class NotificationPayload(BaseModel):
    id: int
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime
