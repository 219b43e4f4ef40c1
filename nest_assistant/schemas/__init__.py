from nest_assistant.schemas.webhook import InboundMessagePayload, WebhookResponse

__all__ = ["InboundMessagePayload", "WebhookResponse"]
