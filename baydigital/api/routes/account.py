"""Account and billing endpoints."""

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.dependencies import get_backend_client, get_payment_gateway
from baydigital.api.middleware.auth import get_current_user
from baydigital.models.account import Account, AccountSummary, OnboardingProgress
from baydigital.services.backend_client import ManagedBackendClient
from baydigital.services.billing import BillingService
from baydigital.services.database import get_db_session
from baydigital.services.onboarding import OnboardingService
from baydigital.services.payment_gateway import PaymentGateway

router = APIRouter(prefix="/v1", tags=["account"])


class CheckoutRequest(BaseModel):
    """Request schema for signup checkout."""

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = Field(None, max_length=255)
    password: str | None = Field(None, max_length=128)
    price_id: str | None = Field(None, alias="priceId")


class CheckoutResponse(BaseModel):
    """Response schema for signup checkout."""

    session_id: str
    url: str | None = None
    user_id: str
    customer_id: str


class VerifyCheckoutRequest(BaseModel):
    """Request schema for verifying a completed checkout."""

    session_id: str | None = None


class VerifyCheckoutResponse(BaseModel):
    success: bool
    email: str


class SyncSubscriptionResponse(BaseModel):
    success: bool
    status: str
    next_billing: str | None = None


def _billing_service(
    db_session: AsyncSession,
    gateway: PaymentGateway,
    backend_client: ManagedBackendClient | None = None,
) -> BillingService:
    return BillingService(db_session, gateway=gateway, backend_client=backend_client)


@router.get("/account", response_model=AccountSummary)
async def get_account(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> AccountSummary:
    """Profile, subscription access flags and sites of the caller."""
    service = _billing_service(db_session, gateway)
    return await service.get_account(current_user["user_id"])


@router.patch("/account/onboarding", response_model=Account)
async def save_onboarding_progress(
    progress: OnboardingProgress,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> Account:
    """Save the onboarding wizard step; the final step completes onboarding."""
    user = await OnboardingService(db_session).save_progress(current_user["user_id"], progress)
    return Account.model_validate(user)

@router.post(
    "/billing/checkout",
    response_model=CheckoutResponse,
    status_code=status.HTTP_200_OK,
)
async def create_checkout(
    body: CheckoutRequest,
    request: Request,
    db_session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    backend_client: ManagedBackendClient = Depends(get_backend_client),
) -> CheckoutResponse:
    """Create an account and start its subscription checkout (public)."""
    service = _billing_service(db_session, gateway, backend_client)
    result = await service.create_checkout(
        email=body.email,
        password=body.password,
        price_id=body.price_id,
        origin=request.headers.get("origin"),
    )
    return CheckoutResponse(**result)


@router.post("/billing/verify-checkout", response_model=VerifyCheckoutResponse)
async def verify_checkout(
    body: VerifyCheckoutRequest,
    db_session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> VerifyCheckoutResponse:
    """Resolve a checkout session back to the account email (public)."""
    service = _billing_service(db_session, gateway)
    return VerifyCheckoutResponse(**await service.verify_checkout(body.session_id))


@router.post("/billing/sync-subscription", response_model=SyncSubscriptionResponse)
async def sync_subscription(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> SyncSubscriptionResponse:
    """Refresh the caller's subscription status from Stripe."""
    service = _billing_service(db_session, gateway)
    return SyncSubscriptionResponse(**await service.sync_subscription(current_user["user_id"]))
