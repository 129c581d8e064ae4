"""Thin wrapper over the Stripe SDK."""

import json
import os

import stripe
import structlog

from baydigital.services.errors import ExternalServiceError, InvalidRequestError

logger = structlog.get_logger(__name__)

# Subscription period fields live on the subscription object in this version
STRIPE_API_VERSION = "2023-10-16"


class PaymentGateway:
    """Customer, checkout and subscription calls plus webhook verification.

    Every call passes the key explicitly instead of mutating the global
    ``stripe.api_key``. Results are reduced to plain dicts holding only the
    fields the billing flow reads.
    """

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        api_version: str = STRIPE_API_VERSION,
    ):
        """Initialize payment gateway.

        Args:
            api_key: Secret key (defaults to STRIPE_SECRET_KEY env var)
            webhook_secret: Endpoint signing secret (defaults to STRIPE_WEBHOOK_SECRET)
            api_version: Pinned API version
        """
        self.api_key = api_key or os.getenv("STRIPE_SECRET_KEY", "")
        self.webhook_secret = webhook_secret or os.getenv("STRIPE_WEBHOOK_SECRET", "")
        self.api_version = api_version

    def _options(self) -> dict:
        if not self.api_key:
            raise ExternalServiceError("stripe", "Missing STRIPE_SECRET_KEY")
        return {"api_key": self.api_key, "stripe_version": self.api_version}

    @staticmethod
    def _wrap(exc: stripe.StripeError) -> ExternalServiceError:
        logger.error(
            "stripe_request_failed",
            error=exc.user_message or str(exc),
            http_status=exc.http_status,
        )
        return ExternalServiceError(
            "stripe",
            f"Stripe error: {exc.user_message or str(exc)}",
            exc.http_status,
        )

    def create_customer(self, email: str, user_id: str) -> str:
        """Create a customer tagged with the dashboard user id.

        Returns:
            Customer id
        """
        try:
            customer = stripe.Customer.create(
                email=email,
                metadata={"supabase_user_id": user_id},
                **self._options(),
            )
        except stripe.StripeError as exc:
            raise self._wrap(exc) from exc
        return customer.id

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> dict:
        """Create a subscription-mode checkout session.

        Returns:
            Dict with id and url
        """
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                client_reference_id=user_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                **self._options(),
            )
        except stripe.StripeError as exc:
            raise self._wrap(exc) from exc
        return {"id": session.id, "url": session.url}

    def retrieve_checkout_session(self, session_id: str) -> dict:
        try:
            session = stripe.checkout.Session.retrieve(session_id, **self._options())
        except stripe.StripeError as exc:
            raise self._wrap(exc) from exc
        return {
            "id": session.id,
            "client_reference_id": getattr(session, "client_reference_id", None),
            "customer": getattr(session, "customer", None),
            "subscription": getattr(session, "subscription", None),
        }

    def retrieve_subscription(self, subscription_id: str) -> dict:
        try:
            subscription = stripe.Subscription.retrieve(subscription_id, **self._options())
        except stripe.StripeError as exc:
            raise self._wrap(exc) from exc
        return {
            "id": subscription.id,
            "status": subscription.status,
            "current_period_start": getattr(subscription, "current_period_start", None),
            "current_period_end": getattr(subscription, "current_period_end", None),
        }

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        """Verify a webhook delivery and return the event as a plain dict.

        Raises:
            ExternalServiceError: If no signing secret is configured
            InvalidRequestError: On a bad signature or an unparseable payload
        """
        if not self.webhook_secret:
            raise ExternalServiceError("stripe", "Missing STRIPE_WEBHOOK_SECRET", 503)
        if not signature:
            raise InvalidRequestError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as exc:
            raise InvalidRequestError("Invalid payload") from exc
        except stripe.SignatureVerificationError as exc:
            logger.warning("stripe_signature_rejected", error=str(exc))
            raise InvalidRequestError("Invalid signature") from exc

        return json.loads(payload)
