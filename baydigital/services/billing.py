"""Account and subscription billing flows."""

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import (
    Account,
    AccountSummary,
    Plan,
    Site,
    SiteDB,
    SubscriptionAccess,
    SubscriptionStatus,
    UserDB,
)
from baydigital.models.base import utcnow
from baydigital.models.notification import NotificationType
from baydigital.models.webhook import ProcessedWebhookEventDB, WebhookOutcome
from baydigital.services.backend_client import ManagedBackendClient
from baydigital.services.errors import InvalidRequestError, NotFoundError
from baydigital.services.notifications import NotificationService
from baydigital.services.payment_gateway import PaymentGateway

logger = structlog.get_logger(__name__)

DEFAULT_ORIGIN = "https://bay.digital"

SUBSCRIPTION_EVENTS = ("customer.subscription.created", "customer.subscription.updated")


def status_from_vendor(vendor_status: str | None) -> SubscriptionStatus:
    """Map a Stripe subscription status onto the dashboard's statuses."""
    if vendor_status in ("active", "trialing"):
        return SubscriptionStatus.ACTIVE
    if vendor_status in ("past_due", "unpaid"):
        return SubscriptionStatus.PAST_DUE
    if vendor_status == "canceled":
        return SubscriptionStatus.CANCELLED
    return SubscriptionStatus.PENDING


def plan_from_amount(unit_amount: int | None) -> Plan:
    """Infer the plan tier from a monthly price in cents."""
    dollars = (unit_amount or 0) / 100
    if dollars >= 99:
        return Plan.PREMIUM
    if dollars >= 49:
        return Plan.PROFESSIONAL
    return Plan.STARTER


def from_epoch(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


def _first_unit_amount(subscription: dict) -> int | None:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    return (items[0].get("price") or {}).get("unit_amount")


class BillingService:
    """Signup checkout, subscription sync and webhook application."""

    def __init__(
        self,
        db_session: AsyncSession,
        gateway: PaymentGateway | None = None,
        backend_client: ManagedBackendClient | None = None,
        notification_service: NotificationService | None = None,
    ):
        """Initialize billing service.

        Args:
            db_session: Database session for persistence
            gateway: Stripe wrapper
            backend_client: Managed backend client (auth user creation)
            notification_service: Notification fan-out
        """
        self.db_session = db_session
        self.gateway = gateway or PaymentGateway()
        self.backend_client = backend_client
        self.notifications = notification_service or NotificationService(db_session)

    async def _get_user(self, user_id: uuid.UUID) -> UserDB:
        user = await self.db_session.get(UserDB, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _find_by_customer(self, customer_id: str | None) -> UserDB | None:
        if not customer_id:
            return None
        query = select(UserDB).where(UserDB.stripe_customer_id == customer_id)
        result = await self.db_session.execute(query)
        return result.scalars().first()

    # ========== Checkout ==========

    async def create_checkout(
        self,
        email: str | None,
        password: str | None,
        price_id: str | None,
        origin: str | None = None,
    ) -> dict:
        """Create the account, the Stripe customer and a checkout session.

        Returns:
            Dict with session_id, url, user_id and customer_id
        """
        if not email or not password or not price_id:
            raise InvalidRequestError("Missing required fields: email, password, priceId")

        backend = self.backend_client or ManagedBackendClient()
        auth_user_id = await backend.create_auth_user(email, password)
        user_id = uuid.UUID(str(auth_user_id))

        user = await self.db_session.get(UserDB, user_id)
        if user is None:
            user = UserDB(id=user_id, email=email, plan=Plan.STARTER.value)
            self.db_session.add(user)

        customer_id = self.gateway.create_customer(email, str(user_id))
        user.stripe_customer_id = customer_id
        user.subscription_status = SubscriptionStatus.PENDING.value
        await self.db_session.flush()

        origin = (origin or DEFAULT_ORIGIN).rstrip("/")
        session = self.gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            user_id=str(user_id),
            success_url=f"{origin}/dashboard?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}/",
        )

        logger.info(
            "checkout_session_created",
            user_id=str(user_id),
            customer_id=customer_id,
            session_id=session["id"],
        )
        return {
            "session_id": session["id"],
            "url": session["url"],
            "user_id": str(user_id),
            "customer_id": customer_id,
        }

    async def verify_checkout(self, session_id: str | None) -> dict:
        """Confirm a completed checkout belongs to a known account."""
        if not session_id:
            raise InvalidRequestError("Missing session_id")

        session = self.gateway.retrieve_checkout_session(session_id)
        reference = session.get("client_reference_id")
        if not reference:
            raise InvalidRequestError("No user ID found in session")

        try:
            user_id = uuid.UUID(str(reference))
        except ValueError as exc:
            raise NotFoundError("User not found") from exc
        user = await self._get_user(user_id)

        logger.info("checkout_verified", user_id=str(user.id))
        return {"success": True, "email": user.email}

    async def sync_subscription(self, user_id: uuid.UUID) -> dict:
        """Pull the stored subscription from Stripe and refresh its status."""
        user = await self._get_user(user_id)
        if not user.stripe_subscription_id:
            raise NotFoundError("No subscription found")

        subscription = self.gateway.retrieve_subscription(user.stripe_subscription_id)
        status = status_from_vendor(subscription.get("status"))
        next_billing = from_epoch(subscription.get("current_period_end"))

        user.subscription_status = status.value
        user.subscription_start_date = from_epoch(subscription.get("current_period_start"))
        user.subscription_end_date = next_billing
        await self.db_session.flush()

        logger.info(
            "subscription_synced",
            user_id=str(user.id),
            status=status.value,
            vendor_status=subscription.get("status"),
        )
        return {
            "success": True,
            "status": status.value,
            "next_billing": next_billing.isoformat() if next_billing else None,
        }

    # ========== Webhooks ==========

    async def handle_webhook(self, payload: bytes, signature: str | None) -> dict:
        """Verify and apply a Stripe event at most once.

        The event id is recorded in the same transaction as the changes it
        causes; a redelivery finds the record and is acknowledged untouched.
        """
        event = self.gateway.construct_event(payload, signature)
        event_id = event.get("id")
        event_type = event.get("type", "")
        if not event_id:
            raise InvalidRequestError("Invalid payload")

        existing = await self.db_session.get(ProcessedWebhookEventDB, event_id)
        if existing is not None:
            logger.info("webhook_duplicate", event_id=event_id, event_type=event_type)
            return {"received": True, "duplicate": True}

        obj = (event.get("data") or {}).get("object") or {}
        if event_type == "checkout.session.completed":
            outcome = await self._apply_checkout_completed(obj)
        elif event_type in SUBSCRIPTION_EVENTS:
            outcome = await self._apply_subscription_change(obj)
        elif event_type == "customer.subscription.deleted":
            outcome = await self._apply_subscription_deleted(obj)
        else:
            outcome = WebhookOutcome.IGNORED

        self.db_session.add(
            ProcessedWebhookEventDB(
                event_id=event_id,
                event_type=event_type,
                customer_id=obj.get("customer"),
                outcome=outcome.value,
                processed_at=utcnow(),
            )
        )
        await self.db_session.flush()

        logger.info(
            "webhook_processed",
            event_id=event_id,
            event_type=event_type,
            outcome=outcome.value,
        )
        return {"received": True}

    async def _apply_checkout_completed(self, session: dict) -> WebhookOutcome:
        reference = session.get("client_reference_id")
        user = None
        if reference:
            try:
                user = await self.db_session.get(UserDB, uuid.UUID(str(reference)))
            except ValueError:
                user = None
        if user is None:
            user = await self._find_by_customer(session.get("customer"))
        if user is None:
            logger.warning("webhook_user_unmatched", client_reference_id=reference)
            return WebhookOutcome.UNMATCHED

        if session.get("customer"):
            user.stripe_customer_id = session["customer"]
        if session.get("subscription"):
            user.stripe_subscription_id = session["subscription"]
        return WebhookOutcome.APPLIED

    async def _apply_subscription_change(self, subscription: dict) -> WebhookOutcome:
        customer_id = subscription.get("customer")
        user = await self._find_by_customer(customer_id)
        if user is None:
            logger.warning("webhook_customer_unmatched", customer_id=customer_id)
            return WebhookOutcome.UNMATCHED

        vendor_status = subscription.get("status")
        computed = plan_from_amount(_first_unit_amount(subscription))
        plan = computed if vendor_status == "active" else Plan.STARTER

        previous_plan = user.plan
        user.plan = plan.value
        user.subscription_status = status_from_vendor(vendor_status).value
        user.stripe_subscription_id = subscription.get("id") or user.stripe_subscription_id
        if subscription.get("current_period_start"):
            user.subscription_start_date = from_epoch(subscription["current_period_start"])
        if subscription.get("current_period_end"):
            user.subscription_end_date = from_epoch(subscription["current_period_end"])

        await self._notify_plan_change(user, previous_plan)
        return WebhookOutcome.APPLIED

    async def _apply_subscription_deleted(self, subscription: dict) -> WebhookOutcome:
        customer_id = subscription.get("customer")
        user = await self._find_by_customer(customer_id)
        if user is None:
            logger.warning("webhook_customer_unmatched", customer_id=customer_id)
            return WebhookOutcome.UNMATCHED

        previous_plan = user.plan
        user.plan = Plan.STARTER.value
        user.subscription_status = SubscriptionStatus.CANCELLED.value

        await self._notify_plan_change(user, previous_plan)
        return WebhookOutcome.APPLIED

    async def _notify_plan_change(self, user: UserDB, previous_plan: str) -> None:
        if user.plan == previous_plan:
            return
        logger.info(
            "plan_changed",
            user_id=str(user.id),
            from_plan=previous_plan,
            to_plan=user.plan,
        )
        await self.notifications.create_notification(
            user.id,
            NotificationType.STATUS_CHANGE,
            title="Your plan has changed",
            message=f"You are now on the {user.plan.capitalize()} plan",
            link="/dashboard",
        )

    # ========== Account ==========

    async def get_account(self, user_id: uuid.UUID) -> AccountSummary:
        """Profile row, subscription access flags and the tenant's sites."""
        user = await self._get_user(user_id)
        query = (
            select(SiteDB)
            .where(SiteDB.user_id == user_id)
            .order_by(SiteDB.created_at.asc())
        )
        result = await self.db_session.execute(query)
        sites = [Site.model_validate(site) for site in result.scalars().all()]

        return AccountSummary(
            account=Account.model_validate(user),
            access=SubscriptionAccess.from_status(user.subscription_status),
            sites=sites,
        )
