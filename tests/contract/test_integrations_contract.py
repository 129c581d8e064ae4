"""Contract tests for endpoints backed by vendor services.

Stripe, the LLM provider, Freepik and the Graph API are replaced with mocks
through ``app.dependency_overrides``; these tests pin the HTTP surface only.
"""

import json
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status
from httpx import AsyncClient

from baydigital.api.dependencies import (
    get_backend_client,
    get_graph_publisher,
    get_image_stager,
    get_llm_client,
    get_payment_gateway,
)
from baydigital.api.main import app
from baydigital.api.routes.stock_images import get_stock_image_service
from baydigital.models.base import utcnow
from baydigital.services.backend_client import ManagedBackendClient
from baydigital.services.errors import ExternalServiceError, InvalidRequestError
from baydigital.services.llm_client import LLMClient
from baydigital.services.payment_gateway import PaymentGateway
from baydigital.services.social_publisher import GraphPublisher, ImageStager
from baydigital.services.stock_images import StockImageService


@pytest.fixture
def mock_gateway() -> MagicMock:
    gateway = MagicMock(spec=PaymentGateway)
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    return gateway


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock(spec=LLMClient)
    app.dependency_overrides[get_llm_client] = lambda: llm
    return llm


@pytest.mark.contract
@pytest.mark.asyncio
class TestStripeWebhookContract:
    """Contract tests for POST /v1/webhooks/stripe."""

    async def test_subscription_event_applied(
        self, client: AsyncClient, mock_gateway: MagicMock, create_user
    ) -> None:
        user = await create_user(stripe_customer_id="cus_web")
        mock_gateway.construct_event.return_value = {
            "id": "evt_web_1",
            "type": "customer.subscription.updated",
            "data": {
                "object": {
                    "id": "sub_web",
                    "customer": "cus_web",
                    "status": "active",
                    "items": {"data": [{"price": {"unit_amount": 9900}}]},
                }
            },
        }
        payload = json.dumps({"id": "evt_web_1"}).encode()

        response = await client.post(
            "/v1/webhooks/stripe",
            content=payload,
            headers={"stripe-signature": "t=1,v1=abc"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True}
        mock_gateway.construct_event.assert_called_once_with(payload, "t=1,v1=abc")
        assert user.plan == "premium"

        again = await client.post(
            "/v1/webhooks/stripe",
            content=payload,
            headers={"stripe-signature": "t=1,v1=abc"},
        )
        assert again.json() == {"received": True, "duplicate": True}

    async def test_bad_signature(self, client: AsyncClient, mock_gateway: MagicMock) -> None:
        mock_gateway.construct_event.side_effect = InvalidRequestError("Invalid signature")

        response = await client.post(
            "/v1/webhooks/stripe", content=b"{}", headers={"stripe-signature": "bogus"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "Invalid signature"


@pytest.mark.contract
@pytest.mark.asyncio
class TestContentEndpointsContract:
    """Contract tests for /v1/content."""

    async def test_caption(
        self, client: AsyncClient, valid_auth_headers: dict[str, str], mock_llm: MagicMock
    ) -> None:
        mock_llm.generate = AsyncMock(return_value=" Fresh bread daily! ")

        response = await client.post(
            "/v1/content/caption",
            json={"topic": "bakery opening", "platform": "Instagram"},
            headers=valid_auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"caption": "Fresh bread daily!"}

    async def test_generation_is_rate_limited(
        self, client: AsyncClient, valid_auth_headers: dict[str, str], mock_llm: MagicMock
    ) -> None:
        """Test that the sixth call inside the burst window is refused."""
        mock_llm.generate = AsyncMock(return_value="caption")

        for _ in range(5):
            response = await client.post(
                "/v1/content/caption", json={}, headers=valid_auth_headers
            )
            assert response.status_code == status.HTTP_200_OK

        response = await client.post("/v1/content/caption", json={}, headers=valid_auth_headers)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert "Retry-After" in response.headers
        error = response.json()["error"]
        assert error["type"] == "rate_limit_exceeded"
        assert error["message"] == "Maximum 10 requests per minute allowed"
        assert error["details"] == {"retry_after": int(response.headers["Retry-After"])}

    async def test_social_post_draft(
        self, client: AsyncClient, valid_auth_headers: dict[str, str], mock_llm: MagicMock
    ) -> None:
        mock_llm.generate_json = AsyncMock(
            return_value={
                "post_text": "Sourdough Saturdays are back! #bakery",
                "headline": "Sourdough Is Back",
                "image_search_query": "sourdough bread",
            }
        )
        stock = MagicMock(spec=StockImageService)
        stock.search = AsyncMock(
            return_value={"data": [{"id": 42, "url": "https://img.example.com/42.jpg"}]}
        )
        app.dependency_overrides[get_stock_image_service] = lambda: stock

        response = await client.post(
            "/v1/content/social-post",
            json={"topic": "sourdough saturdays"},
            headers=valid_auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["headline"] == "Sourdough Is Back"
        assert data["images"][0]["id"] == 42

    async def test_unreachable_model_is_bad_gateway(
        self, client: AsyncClient, valid_auth_headers: dict[str, str], mock_llm: MagicMock
    ) -> None:
        mock_llm.generate = AsyncMock(
            side_effect=ExternalServiceError("llm", "AI API unreachable: connection refused")
        )

        response = await client.post(
            "/v1/content/caption", json={"topic": "brunch"}, headers=valid_auth_headers
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["error"]["details"] == {"service": "llm", "status": None}

    async def test_blog_post_without_site(
        self, client: AsyncClient, valid_auth_headers: dict[str, str], mock_llm: MagicMock
    ) -> None:
        response = await client.post(
            "/v1/content/blog-post",
            json={"topic": "Holiday hours"},
            headers=valid_auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "No site found for user"


@pytest.mark.contract
@pytest.mark.asyncio
class TestStockImageEndpointsContract:
    """Contract tests for /v1/stock-images."""

    async def test_usage_for_starter(
        self, client: AsyncClient, valid_auth_headers: dict[str, str]
    ) -> None:
        app.dependency_overrides[get_backend_client] = lambda: MagicMock(spec=ManagedBackendClient)

        response = await client.get("/v1/stock-images/usage", headers=valid_auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"used": 0, "limit": 5, "remaining": 5}

    async def test_search_limit_validated(
        self, client: AsyncClient, valid_auth_headers: dict[str, str]
    ) -> None:
        stock = MagicMock(spec=StockImageService)
        app.dependency_overrides[get_stock_image_service] = lambda: stock

        response = await client.post(
            "/v1/stock-images/search",
            json={"query": "coffee", "limit": 500},
            headers=valid_auth_headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.contract
@pytest.mark.asyncio
class TestSocialEndpointsContract:
    """Contract tests for /v1/social."""

    @pytest.fixture(autouse=True)
    def mock_publishing(self) -> None:
        app.dependency_overrides[get_graph_publisher] = lambda: MagicMock(spec=GraphPublisher)
        app.dependency_overrides[get_image_stager] = lambda: MagicMock(spec=ImageStager)

    async def test_schedule_and_list(
        self, client: AsyncClient, valid_auth_headers: dict[str, str]
    ) -> None:
        scheduled_at = (utcnow() + timedelta(days=2)).replace(microsecond=0)

        response = await client.post(
            "/v1/social/posts",
            json={
                "post_text": "Live music Friday",
                "platforms": ["facebook"],
                "scheduled_at": scheduled_at.isoformat(),
            },
            headers=valid_auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        post = response.json()
        assert post["status"] == "scheduled"
        assert post["platforms"] == ["facebook"]

        listed = await client.get("/v1/social/posts", headers=valid_auth_headers)
        assert [p["id"] for p in listed.json()] == [post["id"]]

        deleted = await client.delete(f"/v1/social/posts/{post['id']}", headers=valid_auth_headers)
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

    async def test_instagram_requires_image(
        self, client: AsyncClient, valid_auth_headers: dict[str, str]
    ) -> None:
        scheduled_at = utcnow() + timedelta(days=1)

        response = await client.post(
            "/v1/social/posts",
            json={
                "post_text": "New menu",
                "platforms": ["instagram"],
                "scheduled_at": scheduled_at.isoformat(),
            },
            headers=valid_auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "Instagram posts require an image"

    async def test_publish_now_reports_platform_outcome(
        self, client: AsyncClient, valid_auth_headers: dict[str, str]
    ) -> None:
        response = await client.post(
            "/v1/social/posts/publish-now",
            json={"post_text": "Open late tonight", "platforms": ["facebook"]},
            headers=valid_auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["result"] == {"success": False, "error": "No social media accounts connected"}
        assert data["post"]["status"] == "failed"

    async def test_process_due_requires_service_key(self, client: AsyncClient, monkeypatch) -> None:
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")

        response = await client.post(
            "/v1/social/process-due", headers={"Authorization": "Bearer test-token"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_process_due_with_nothing_due(self, client: AsyncClient, monkeypatch) -> None:
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")

        response = await client.post(
            "/v1/social/process-due", headers={"Authorization": "Bearer service-key"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"processed": 0, "results": []}
