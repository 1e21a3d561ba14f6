"""Shared FastAPI dependencies for provider gateways and services."""
from functools import lru_cache

from fastapi import Depends

from intellichat.config import Settings, get_settings
from intellichat.db import Store, get_db
from intellichat.services.generation import GenerationGateway, create_generation_gateway
from intellichat.services.payments import PaymentGateway, create_payment_gateway
from intellichat.services.pipeline import CreditPipeline
from intellichat.services.reconciler import WebhookReconciler
from intellichat.services.uploader import AssetUploader, create_uploader


@lru_cache
def get_generation_gateway() -> GenerationGateway:
    return create_generation_gateway(get_settings())


@lru_cache
def get_uploader() -> AssetUploader:
    return create_uploader(get_settings())


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return create_payment_gateway(get_settings())


def get_pipeline(
    store: Store = Depends(get_db),
    generator: GenerationGateway = Depends(get_generation_gateway),
    uploader: AssetUploader = Depends(get_uploader),
    settings: Settings = Depends(get_settings),
) -> CreditPipeline:
    return CreditPipeline(store, generator, uploader, settings)


def get_reconciler(
    store: Store = Depends(get_db),
    payments: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> WebhookReconciler:
    return WebhookReconciler(store, payments, settings.app_id)
