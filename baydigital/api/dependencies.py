"""Vendor client providers shared by the routes.

Each provider returns a process-wide client so connection pools are reused;
tests swap them out through ``app.dependency_overrides``.
"""

from functools import lru_cache

from baydigital.services.backend_client import ManagedBackendClient
from baydigital.services.llm_client import LLMClient
from baydigital.services.payment_gateway import PaymentGateway
from baydigital.services.social_publisher import GraphPublisher, ImageStager


@lru_cache(maxsize=1)
def get_backend_client() -> ManagedBackendClient:
    return ManagedBackendClient()


@lru_cache(maxsize=1)
def get_llm_client() -> LLMClient:
    return LLMClient()


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()


@lru_cache(maxsize=1)
def get_graph_publisher() -> GraphPublisher:
    return GraphPublisher()


@lru_cache(maxsize=1)
def get_image_stager() -> ImageStager:
    return ImageStager(get_backend_client())


async def close_clients() -> None:
    """Close the HTTP pools of any client that was created."""
    for provider in (get_image_stager, get_backend_client, get_llm_client, get_graph_publisher):
        if provider.cache_info().currsize:
            await provider().close()
            provider.cache_clear()
    get_payment_gateway.cache_clear()
