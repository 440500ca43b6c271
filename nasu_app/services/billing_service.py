"""
Billing service: Stripe Checkout, point reissue, subscription cancel and webhooks.
"""

import math
from typing import Any, Dict, Optional
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter
from loguru import logger

from ..config import settings
from ..exceptions import ResourceNotFoundError, ValidationError
from ..schemas.billing import CheckoutRequest, CheckoutSessionResponse
from ..utils.api_clients import StripeClient
from ..utils.firebase_client import FirebaseClient
from .auth_service import AuthService
from .referral_service import ReferralService

DEFAULT_PRODUCT_NAME = "adtown フリマ商品"
REISSUE_PRODUCT_NAME = "失効ポイント再発行手数料"
POINT_REISSUE = "point_reissue"
FREE_PLAN = "free"


def platform_fee(price: int, rate: Optional[float] = None) -> int:
    """Platform share of a marketplace sale, rounded down."""
    rate = settings.platform_fee_rate if rate is None else rate
    return int(math.floor(price * rate))


def reissue_fee(expired_amount: int, rate: Optional[float] = None) -> int:
    """Fee for reissuing expired points: a share of the amount, at least 1 yen."""
    rate = settings.reissue_fee_rate if rate is None else rate
    return max(1, int(math.floor(expired_amount * rate)))


def build_checkout_params(request: CheckoutRequest, origin: str) -> Dict[str, Any]:
    """
    Checkout Session parameters for a destination charge.

    Args:
        request: Item and seller
        origin: Site origin used for the redirect URLs

    Returns:
        Keyword arguments for `stripe.checkout.Session.create`
    """
    if not request.price or not request.seller_stripe_id:
        raise ValidationError("価格または出品者IDが不足しています。")

    amount = int(request.price)
    return {
        "payment_method_types": ["card"],
        "line_items": [{
            "price_data": {
                "currency": settings.currency,
                "product_data": {"name": request.product_name or DEFAULT_PRODUCT_NAME},
                "unit_amount": amount,
            },
            "quantity": 1,
        }],
        "mode": "payment",
        "payment_intent_data": {
            "application_fee_amount": platform_fee(amount),
            "transfer_data": {"destination": request.seller_stripe_id},
        },
        "success_url": f"{origin}{request.success_url or '/success'}?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{origin}{request.cancel_url or '/cancel'}",
    }


class BillingService:
    """Stripe payments tied to Firestore user documents."""

    def __init__(
        self,
        firebase: FirebaseClient,
        stripe_client: StripeClient,
        referral_service: Optional[ReferralService] = None,
        auth_service: Optional[AuthService] = None,
    ):
        self.firebase = firebase
        self.stripe = stripe_client
        self.referral_service = referral_service or ReferralService(firebase, stripe_client)
        self.auth_service = auth_service or AuthService(firebase)

    @property
    def users(self):
        return self.firebase.db.collection(settings.firestore_collection_users)

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSessionResponse:
        """Create a marketplace Checkout Session with the platform fee."""
        params = build_checkout_params(request, settings.site_origin)
        session = self.stripe.create_checkout_session(**params)
        logger.info(f"Checkout session {session.id} created for seller {request.seller_stripe_id}")
        return CheckoutSessionResponse(session_id=session.id, url=session.url)

    def create_reissue_session(self, uid: str) -> CheckoutSessionResponse:
        """
        Create a Checkout Session for reissuing the caller's expired points.

        Args:
            uid: Caller UID

        Returns:
            Session ID and URL
        """
        user = self.firebase.get_user(uid)
        if user is None:
            raise ResourceNotFoundError("User not found")

        expired_amount = (user.get("points") or {}).get("expiredAmount") or 0
        if expired_amount <= 0:
            raise ValidationError("No expired points to reissue")

        origin = settings.site_origin
        session = self.stripe.create_checkout_session(
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": settings.currency,
                    "product_data": {
                        "name": REISSUE_PRODUCT_NAME,
                        "description": f"{expired_amount:,}ポイント分の再発行",
                    },
                    "unit_amount": reissue_fee(expired_amount),
                },
                "quantity": 1,
            }],
            mode="payment",
            success_url=f"{origin}/mypage?reissue=success",
            cancel_url=f"{origin}/mypage?reissue=cancel",
            metadata={
                "userId": uid,
                "reissueAmount": str(expired_amount),
                "type": POINT_REISSUE,
            },
        )
        logger.info(f"Reissue session {session.id} created for {uid} ({expired_amount} points)")
        return CheckoutSessionResponse(session_id=session.id, url=session.url)

    def cancel_subscription(self, uid: str) -> Dict[str, str]:
        """Cancel the caller's subscription at the end of the billing period."""
        user_ref = self.users.document(uid)
        snap = user_ref.get()
        if not snap.exists:
            raise ResourceNotFoundError("ユーザー情報が見つかりません。")

        subscription_id = (snap.to_dict() or {}).get("stripeSubscriptionId")
        if not subscription_id:
            raise ValidationError("サブスクリプション情報が見つかりません。")

        self.stripe.cancel_subscription_at_period_end(subscription_id)
        user_ref.update({"subscriptionStatus": "canceled"})
        self.auth_service.set_plan_claim(uid, FREE_PLAN)

        logger.info(f"Subscription {subscription_id} of {uid} set to cancel at period end")
        return {"message": "サブスクリプションの解約手続きが完了しました。"}

    # ---- webhook ----

    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, bool]:
        """
        Verify and dispatch a Stripe webhook.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header

        Returns:
            `{"received": True}`
        """
        try:
            event = self.stripe.parse_webhook_event(payload, signature)
        except ValueError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise ValidationError(f"Webhook Error: {e}") from e

        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}
        logger.info(f"Stripe event received: {event_type}")

        if event_type == "checkout.session.completed":
            self.on_checkout_completed(obj)
        elif event_type == "invoice.payment_succeeded":
            self.referral_service.record_referral_reward(obj)
        elif event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
            self.on_subscription_changed(obj, deleted=event_type == "customer.subscription.deleted")
        else:
            logger.info(f"Unhandled event type {event_type}")

        return {"received": True}

    def on_checkout_completed(self, session: Dict[str, Any]) -> None:
        metadata = session.get("metadata") or {}
        if metadata.get("type") == POINT_REISSUE:
            self.restore_expired_points(metadata.get("userId"), int(metadata.get("reissueAmount") or 0))
            return

        uid = session.get("client_reference_id")
        if not uid:
            logger.warning(f"Checkout session {session.get('id')} has no client_reference_id")
            return
        self.users.document(uid).update({
            "stripeCustomerId": session.get("customer"),
            "subscriptionId": session.get("subscription"),
            "subscriptionStatus": "active",
        })
        logger.info(f"[{uid}] checkout.session.completed: subscription activated")

    def restore_expired_points(self, uid: Optional[str], amount: int) -> None:
        """Move reissued points from the expired balance back into the usable balance."""
        if not uid or amount <= 0:
            logger.warning(f"Ignoring point reissue with userId={uid!r} amount={amount}")
            return
        self.users.document(uid).update({
            "points.usableBalance": firestore.Increment(amount),
            "points.expiredAmount": firestore.Increment(-amount),
            "lastTransactionAt": firestore.SERVER_TIMESTAMP,
        })
        logger.info(f"[{uid}] Reissued {amount} expired points")

    def on_subscription_changed(self, subscription: Dict[str, Any], deleted: bool = False) -> None:
        customer_id = subscription.get("customer")
        if not customer_id:
            return
        query = self.users.where(filter=FieldFilter("stripeCustomerId", "==", customer_id)).limit(1)
        matches = list(query.stream())
        if not matches:
            logger.warning(f"No user for Stripe customer {customer_id}")
            return

        status = "canceled" if deleted else subscription.get("status")
        matches[0].reference.update({"subscriptionStatus": status})
        logger.info(f"[{matches[0].id}] subscriptionStatus -> {status}")
