"""Payment processor webhook endpoint."""

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.dependencies import get_payment_gateway
from baydigital.services.billing import BillingService
from baydigital.services.database import get_db_session
from baydigital.services.payment_gateway import PaymentGateway

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="stripe-signature"),
    db_session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> dict:
    """Apply a signed Stripe event.

    The raw body is verified before parsing, so it is read directly rather
    than through a pydantic model.
    """
    payload = await request.body()
    service = BillingService(db_session, gateway=gateway)
    return await service.handle_webhook(payload, stripe_signature)
