from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


class InboundMessagePayload(BaseModel):
    sender_id: str = Field(validation_alias=AliasChoices("senderId", "sender_id", "from"))
    text: Optional[Any] = Field(default=None, validation_alias=AliasChoices("text", "body", "message"))
    message_id: str = Field(validation_alias=AliasChoices("messageId", "message_id", "id"))
    timestamp: float = Field(ge=0, allow_inf_nan=False)
    from_self: bool = Field(default=False, validation_alias=AliasChoices("fromSelf", "from_self", "fromMe"))


class WebhookResponse(BaseModel):
    success: bool
    action: str
    intent: Optional[str] = None
    replies: list[str] = []
