from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventSource(BaseModel):
    """Sender of a webhook event (user, group, or room)."""
    model_config = ConfigDict(populate_by_name=True)

    type: str = "user"
    user_id: Optional[str] = Field(default=None, alias="userId")


class EventMessage(BaseModel):
    """Message body of a webhook event; only text messages carry text."""
    id: Optional[str] = None
    type: str
    text: Optional[str] = None


class WebhookEvent(BaseModel):
    """Single LINE webhook event."""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    reply_token: Optional[str] = Field(default=None, alias="replyToken")
    source: EventSource = Field(default_factory=EventSource)
    message: Optional[EventMessage] = None

    def is_text_message(self) -> bool:
        return self.type == "message" and self.message is not None and self.message.type == "text"


class WebhookRequest(BaseModel):
    """Webhook payload posted by the LINE platform."""
    destination: Optional[str] = None
    events: List[WebhookEvent] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Subset of the LINE profile used for order rows."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(default="", alias="userId")
    display_name: str = Field(default="", alias="displayName")
