"""Application error taxonomy.

Every error raised from a request handler derives from ``IntelliChatError``
and is rendered by the exception handlers in ``intellichat.main`` as
``{"success": false, "message": ...}``. Only authentication failures and
the webhook (bad signature, failed processing) change the HTTP status code.
"""
from fastapi import status


class IntelliChatError(Exception):
    """Base class for errors reported to API clients."""

    status_code: int = status.HTTP_200_OK
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(IntelliChatError):
    default_message = "Invalid request"


class AuthFailed(IntelliChatError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class UserExists(IntelliChatError):
    default_message = "User already exists"


class InvalidCredentials(IntelliChatError):
    default_message = "Invalid email or password"


class InsufficientCredits(IntelliChatError):
    default_message = "Insufficient credits"


class ChatNotFound(IntelliChatError):
    default_message = "Chat not found"


class GenerationFailed(IntelliChatError):
    default_message = "Generation failed"


class UploadFailed(IntelliChatError):
    default_message = "Image upload failed"


class PlanNotFound(IntelliChatError):
    default_message = "Plan not found"


class PaymentGatewayFailed(IntelliChatError):
    default_message = "Payment error"


class InvalidSignature(IntelliChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid signature"


class WebhookProcessingFailed(IntelliChatError):
    """A verified event could not be applied. Stripe redelivers on 5xx."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Webhook processing failed"
