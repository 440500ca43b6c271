"""
Stripe checkout, point reissue, subscription cancel and the Stripe webhook.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from ..dependencies import get_billing_service, get_current_user
from ..schemas.billing import CheckoutRequest
from ..schemas.user import AuthenticatedUser
from ..services.billing_service import BillingService

router = APIRouter(tags=["billing"])


@router.post("/api/checkout/create-session")
def create_checkout_session(
    request: CheckoutRequest,
    service: BillingService = Depends(get_billing_service),
) -> Dict[str, Any]:
    return service.create_checkout_session(request).to_api()


@router.post("/api/points/reissue")
def reissue_points(
    user: AuthenticatedUser = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service),
) -> Dict[str, Any]:
    return service.create_reissue_session(user.uid).to_api()


@router.post("/api/subscription/cancel")
def cancel_subscription(
    user: AuthenticatedUser = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service),
) -> Dict[str, Any]:
    return service.cancel_subscription(user.uid)


@router.post("/api/stripe/webhook")
async def stripe_webhook(
    request: Request,
    service: BillingService = Depends(get_billing_service),
) -> Dict[str, Any]:
    """Stripe events; the raw body is needed for signature verification."""
    payload = await request.body()
    return await run_in_threadpool(service.handle_webhook, payload, request.headers.get("stripe-signature"))
