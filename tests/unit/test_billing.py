"""Unit tests for billing: status mapping, checkout and webhook application."""

import hashlib
import hmac
import json
import time
import uuid
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import Plan, SubscriptionAccess, SubscriptionStatus, UserDB
from baydigital.models.notification import NotificationDB, NotificationType
from baydigital.models.webhook import ProcessedWebhookEventDB, WebhookOutcome
from baydigital.services.billing import (
    BillingService,
    from_epoch,
    plan_from_amount,
    status_from_vendor,
)
from baydigital.services.errors import ExternalServiceError, InvalidRequestError, NotFoundError
from baydigital.services.payment_gateway import PaymentGateway


def _subscription_event(event_id, event_type, customer, status="active", unit_amount=4900):
    return {
        "id": event_id,
        "type": event_type,
        "data": {
            "object": {
                "id": "sub_123",
                "customer": customer,
                "status": status,
                "current_period_start": 1767225600,
                "current_period_end": 1769904000,
                "items": {"data": [{"price": {"unit_amount": unit_amount}}]},
            }
        },
    }


@pytest.fixture
def mock_gateway() -> MagicMock:
    """Provide a mocked Stripe gateway."""
    return MagicMock(spec=PaymentGateway)


@pytest.mark.unit
class TestStatusMapping:
    """Unit tests for vendor status and price mapping."""

    @pytest.mark.parametrize(
        "vendor_status,expected",
        [
            ("active", SubscriptionStatus.ACTIVE),
            ("trialing", SubscriptionStatus.ACTIVE),
            ("past_due", SubscriptionStatus.PAST_DUE),
            ("unpaid", SubscriptionStatus.PAST_DUE),
            ("canceled", SubscriptionStatus.CANCELLED),
            ("incomplete", SubscriptionStatus.PENDING),
            (None, SubscriptionStatus.PENDING),
        ],
    )
    def test_status_from_vendor(self, vendor_status, expected) -> None:
        assert status_from_vendor(vendor_status) == expected

    @pytest.mark.parametrize(
        "unit_amount,expected",
        [
            (9900, Plan.PREMIUM),
            (12900, Plan.PREMIUM),
            (4900, Plan.PROFESSIONAL),
            (9899, Plan.PROFESSIONAL),
            (2900, Plan.STARTER),
            (None, Plan.STARTER),
        ],
    )
    def test_plan_from_amount(self, unit_amount, expected) -> None:
        assert plan_from_amount(unit_amount) == expected

    def test_from_epoch_is_naive_utc(self) -> None:
        assert from_epoch(0) == datetime(1970, 1, 1)
        assert from_epoch(None) is None

    def test_access_flags(self) -> None:
        """Test that past-due is a grace period and anything unpaid is blocked."""
        active = SubscriptionAccess.from_status("active")
        assert active.has_access and not active.is_grace_period and not active.is_blocked

        grace = SubscriptionAccess.from_status("past_due")
        assert grace.has_access and grace.is_grace_period

        for status in ("cancelled", "pending", None):
            access = SubscriptionAccess.from_status(status)
            assert access.is_blocked and not access.has_access


@pytest.mark.unit
class TestCheckout:
    """Unit tests for signup checkout."""

    @pytest.mark.asyncio
    async def test_missing_fields_rejected(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock
    ) -> None:
        service = BillingService(async_db_session, gateway=mock_gateway, backend_client=MagicMock())

        with pytest.raises(InvalidRequestError, match="Missing required fields"):
            await service.create_checkout("a@example.com", "", "price_1")

        mock_gateway.create_customer.assert_not_called()

    @pytest.mark.asyncio
    async def test_checkout_creates_account_and_session(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock
    ) -> None:
        """Test that checkout provisions the user, customer and session."""
        user_id = uuid.uuid4()
        backend = MagicMock()
        backend.create_auth_user = AsyncMock(return_value=str(user_id))
        mock_gateway.create_customer.return_value = "cus_123"
        mock_gateway.create_checkout_session.return_value = {
            "id": "cs_test_1",
            "url": "https://checkout.stripe.com/c/cs_test_1",
        }
        service = BillingService(async_db_session, gateway=mock_gateway, backend_client=backend)

        result = await service.create_checkout(
            "new@example.com", "s3cret!", "price_pro", origin="https://app.example.com/"
        )

        assert result == {
            "session_id": "cs_test_1",
            "url": "https://checkout.stripe.com/c/cs_test_1",
            "user_id": str(user_id),
            "customer_id": "cus_123",
        }
        kwargs = mock_gateway.create_checkout_session.call_args.kwargs
        assert kwargs["success_url"] == (
            "https://app.example.com/dashboard?session_id={CHECKOUT_SESSION_ID}"
        )
        assert kwargs["cancel_url"] == "https://app.example.com/"
        assert kwargs["user_id"] == str(user_id)

        user = await async_db_session.get(UserDB, user_id)
        assert user.email == "new@example.com"
        assert user.plan == "starter"
        assert user.stripe_customer_id == "cus_123"
        assert user.subscription_status == "pending"

    @pytest.mark.asyncio
    async def test_verify_checkout_requires_reference(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock
    ) -> None:
        mock_gateway.retrieve_checkout_session.return_value = {"id": "cs_1"}
        service = BillingService(async_db_session, gateway=mock_gateway)

        with pytest.raises(InvalidRequestError, match="No user ID found in session"):
            await service.verify_checkout("cs_1")

    @pytest.mark.asyncio
    async def test_verify_checkout_unknown_user(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock
    ) -> None:
        mock_gateway.retrieve_checkout_session.return_value = {
            "id": "cs_1",
            "client_reference_id": str(uuid.uuid4()),
        }
        service = BillingService(async_db_session, gateway=mock_gateway)

        with pytest.raises(NotFoundError, match="User not found"):
            await service.verify_checkout("cs_1")

    @pytest.mark.asyncio
    async def test_verify_checkout_returns_email(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock, create_user
    ) -> None:
        user = await create_user(email="owner@example.com")
        mock_gateway.retrieve_checkout_session.return_value = {
            "id": "cs_1",
            "client_reference_id": str(user.id),
        }
        service = BillingService(async_db_session, gateway=mock_gateway)

        assert await service.verify_checkout("cs_1") == {
            "success": True,
            "email": "owner@example.com",
        }

    @pytest.mark.asyncio
    async def test_sync_without_subscription(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock, create_user
    ) -> None:
        user = await create_user()
        service = BillingService(async_db_session, gateway=mock_gateway)

        with pytest.raises(NotFoundError, match="No subscription found"):
            await service.sync_subscription(user.id)

    @pytest.mark.asyncio
    async def test_sync_updates_status_and_dates(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock, create_user
    ) -> None:
        user = await create_user(stripe_subscription_id="sub_1")
        mock_gateway.retrieve_subscription.return_value = {
            "id": "sub_1",
            "status": "past_due",
            "current_period_start": 0,
            "current_period_end": 86400,
        }
        service = BillingService(async_db_session, gateway=mock_gateway)

        result = await service.sync_subscription(user.id)

        assert result == {
            "success": True,
            "status": "past_due",
            "next_billing": "1970-01-02T00:00:00",
        }
        assert user.subscription_status == "past_due"


@pytest.mark.unit
class TestWebhooks:
    """Unit tests for webhook application and idempotency."""

    @pytest.mark.asyncio
    async def test_subscription_update_sets_plan_and_notifies(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock, create_user
    ) -> None:
        """Test that an active subscription upgrade changes plan and status."""
        user = await create_user(stripe_customer_id="cus_1")
        mock_gateway.construct_event.return_value = _subscription_event(
            "evt_1", "customer.subscription.updated", "cus_1", unit_amount=9900
        )
        service = BillingService(async_db_session, gateway=mock_gateway)

        result = await service.handle_webhook(b"{}", "t=1,v1=sig")

        assert result == {"received": True}
        assert user.plan == "premium"
        assert user.subscription_status == "active"
        assert user.stripe_subscription_id == "sub_123"
        assert user.subscription_end_date == from_epoch(1769904000)

        rows = await async_db_session.execute(
            select(NotificationDB).where(NotificationDB.user_id == user.id)
        )
        notifications = list(rows.scalars().all())
        assert [n.type for n in notifications] == [NotificationType.STATUS_CHANGE.value]
        assert notifications[0].message == "You are now on the Premium plan"

    @pytest.mark.asyncio
    async def test_inactive_subscription_falls_back_to_starter(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock, create_user
    ) -> None:
        user = await create_user(plan="professional", stripe_customer_id="cus_2")
        mock_gateway.construct_event.return_value = _subscription_event(
            "evt_2", "customer.subscription.updated", "cus_2", status="past_due", unit_amount=4900
        )
        service = BillingService(async_db_session, gateway=mock_gateway)

        await service.handle_webhook(b"{}", "sig")

        assert user.plan == "starter"
        assert user.subscription_status == "past_due"

    @pytest.mark.asyncio
    async def test_subscription_deleted_cancels(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock, create_user
    ) -> None:
        user = await create_user(plan="premium", stripe_customer_id="cus_3")
        mock_gateway.construct_event.return_value = _subscription_event(
            "evt_3", "customer.subscription.deleted", "cus_3", status="canceled"
        )
        service = BillingService(async_db_session, gateway=mock_gateway)

        await service.handle_webhook(b"{}", "sig")

        assert user.plan == "starter"
        assert user.subscription_status == "cancelled"

    @pytest.mark.asyncio
    async def test_checkout_completed_links_subscription(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock, create_user
    ) -> None:
        user = await create_user()
        mock_gateway.construct_event.return_value = {
            "id": "evt_4",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "client_reference_id": str(user.id),
                    "customer": "cus_4",
                    "subscription": "sub_4",
                }
            },
        }
        service = BillingService(async_db_session, gateway=mock_gateway)

        await service.handle_webhook(b"{}", "sig")

        assert user.stripe_customer_id == "cus_4"
        assert user.stripe_subscription_id == "sub_4"
        event = await async_db_session.get(ProcessedWebhookEventDB, "evt_4")
        assert event.outcome == WebhookOutcome.APPLIED.value

    @pytest.mark.asyncio
    async def test_redelivered_event_is_applied_once(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock, create_user
    ) -> None:
        """Test that a second delivery of the same event id is acknowledged untouched."""
        user = await create_user(stripe_customer_id="cus_5")
        mock_gateway.construct_event.return_value = _subscription_event(
            "evt_5", "customer.subscription.updated", "cus_5", unit_amount=4900
        )
        service = BillingService(async_db_session, gateway=mock_gateway)

        await service.handle_webhook(b"{}", "sig")
        user.plan = "starter"
        second = await service.handle_webhook(b"{}", "sig")

        assert second == {"received": True, "duplicate": True}
        assert user.plan == "starter"

    @pytest.mark.asyncio
    async def test_unknown_customer_is_recorded_unmatched(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock
    ) -> None:
        mock_gateway.construct_event.return_value = _subscription_event(
            "evt_6", "customer.subscription.created", "cus_nobody"
        )
        service = BillingService(async_db_session, gateway=mock_gateway)

        assert await service.handle_webhook(b"{}", "sig") == {"received": True}

        event = await async_db_session.get(ProcessedWebhookEventDB, "evt_6")
        assert event.outcome == WebhookOutcome.UNMATCHED.value

    @pytest.mark.asyncio
    async def test_unhandled_event_type_is_ignored(
        self, async_db_session: AsyncSession, mock_gateway: MagicMock
    ) -> None:
        mock_gateway.construct_event.return_value = {
            "id": "evt_7",
            "type": "invoice.paid",
            "data": {"object": {"customer": "cus_7"}},
        }
        service = BillingService(async_db_session, gateway=mock_gateway)

        await service.handle_webhook(b"{}", "sig")

        event = await async_db_session.get(ProcessedWebhookEventDB, "evt_7")
        assert event.outcome == WebhookOutcome.IGNORED.value
        assert event.customer_id == "cus_7"


@pytest.mark.unit
class TestWebhookSignature:
    """Unit tests for signature verification in the gateway."""

    @staticmethod
    def _sign(payload: bytes, secret: str) -> str:
        timestamp = int(time.time())
        signed = f"{timestamp}.{payload.decode()}".encode()
        signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={signature}"

    def test_valid_signature_returns_plain_dict(self) -> None:
        gateway = PaymentGateway(api_key="sk_test", webhook_secret="whsec_test")
        payload = json.dumps({"id": "evt_1", "object": "event", "type": "invoice.paid"}).encode()

        event = gateway.construct_event(payload, self._sign(payload, "whsec_test"))

        assert event["id"] == "evt_1"
        assert isinstance(event, dict)

    def test_bad_signature_rejected(self) -> None:
        gateway = PaymentGateway(api_key="sk_test", webhook_secret="whsec_test")
        payload = json.dumps({"id": "evt_1", "object": "event"}).encode()

        with pytest.raises(InvalidRequestError, match="Invalid signature"):
            gateway.construct_event(payload, self._sign(payload, "whsec_other"))

    def test_missing_signature_rejected(self) -> None:
        gateway = PaymentGateway(api_key="sk_test", webhook_secret="whsec_test")

        with pytest.raises(InvalidRequestError, match="Missing stripe-signature header"):
            gateway.construct_event(b"{}", None)

    def test_missing_secret_is_unavailable(self, monkeypatch) -> None:
        monkeypatch.delenv("STRIPE_WEBHOOK_SECRET", raising=False)
        gateway = PaymentGateway(api_key="sk_test")

        with pytest.raises(ExternalServiceError) as exc_info:
            gateway.construct_event(b"{}", "t=1,v1=x")

        assert exc_info.value.status_code == 503

    def test_missing_api_key(self, monkeypatch) -> None:
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        gateway = PaymentGateway()

        with pytest.raises(ExternalServiceError, match="Missing STRIPE_SECRET_KEY"):
            gateway.create_customer("a@example.com", "user-1")
