"""Domain services and provider gateways."""
from .generation import GeneratedImage, GenerationGateway, create_generation_gateway
from .payments import PaymentEvent, PaymentGateway, create_payment_gateway
from .pipeline import CREDIT_COST, CreditPipeline, Exchange, MessageMode
from .reconciler import ReconcileResult, WebhookReconciler
from .uploader import AssetUploader, create_uploader

__all__ = [
    "GeneratedImage", "GenerationGateway", "create_generation_gateway",
    "PaymentEvent", "PaymentGateway", "create_payment_gateway",
    "CREDIT_COST", "CreditPipeline", "Exchange", "MessageMode",
    "ReconcileResult", "WebhookReconciler",
    "AssetUploader", "create_uploader",
]
