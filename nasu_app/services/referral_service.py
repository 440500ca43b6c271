"""
Referral service: affiliate click tracking, reward recording and Stripe payouts.
"""

import math
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
from google.api_core.exceptions import NotFound
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter
from loguru import logger

from ..config import settings
from ..exceptions import (
    ConfigurationError,
    ExternalServiceError,
    ResourceNotFoundError,
    ValidationError,
)
from ..schemas.billing import (
    AffiliateDashboard,
    FailedPayout,
    PayoutGroup,
    PayoutRunResult,
    ReferralStats,
    ReferralSummary,
    ReferralType,
    SuccessfulPayout,
    TrackClickRequest,
)
from ..schemas.user import PayoutSettingsRequest
from ..utils.api_clients import StripeClient
from ..utils.firebase_client import FirebaseClient
from ..utils.helpers import now_jst
from ..utils.validators import validate_payout_settings

PAYOUT_REASON = "Referral Rewards Payout"
NOTHING_TO_PAY_MESSAGE = "支払い対象となる未払いレコードはありません。"
NO_CONNECT_ACCOUNT_REASON = "Stripe ConnectアカウントIDが未登録"


def select_referral_rate(now: Optional[datetime] = None) -> float:
    """
    Rate given to a referrer on their first reward.

    Args:
        now: Current time (defaults to now in JST)

    Returns:
        Campaign rate until the campaign end, standard rate afterwards
    """
    now = now or now_jst()
    if now <= settings.referral_campaign_end:
        return settings.referral_campaign_rate
    return settings.referral_standard_rate


def reward_amount(payment_amount: int, rate: float) -> int:
    return int(math.floor(payment_amount * rate))


def below_minimum_reason(minimum: int) -> str:
    return f"最低支払い額（{minimum}円）未満"


def group_pending_payouts(records: Iterable[Tuple[str, Dict[str, Any]]]) -> Dict[str, PayoutGroup]:
    """
    Group pending payout records by referrer.

    Args:
        records: (document ID, data) pairs

    Returns:
        Referrer UID to summed amount and record IDs, in first-seen order
    """
    groups: Dict[str, PayoutGroup] = {}
    for record_id, data in records:
        partner_id = data.get("referrerUid")
        group = groups.get(partner_id)
        if group is None:
            group = groups[partner_id] = PayoutGroup(partner_id=partner_id)
        group.unpaid_amount += data.get("amount") or 0
        group.payout_record_ids.append(record_id)
    return groups


def payout_rejection(group: PayoutGroup, user: Optional[Dict[str, Any]], minimum: int) -> Optional[str]:
    """Reason a group cannot be paid now, or None when it can."""
    if group.unpaid_amount < minimum:
        return below_minimum_reason(minimum)
    if not (user or {}).get("stripeAccountId"):
        return NO_CONNECT_ACCOUNT_REASON
    return None


class ReferralService:
    """Affiliate stats and referral rewards on Firestore and Stripe Connect."""

    def __init__(self, firebase: FirebaseClient, stripe_client: StripeClient):
        self.firebase = firebase
        self.stripe = stripe_client

    @property
    def db(self):
        return self.firebase.db

    @property
    def users(self):
        return self.db.collection(settings.firestore_collection_users)

    def track_click(self, request: TrackClickRequest) -> Dict[str, Any]:
        """Count a click on a referral link."""
        valid_types = {t.value for t in ReferralType}
        if not request.ref_id or request.type not in valid_types:
            logger.warning(f"Rejected click tracking: refId={request.ref_id!r} type={request.type!r}")
            raise ValidationError("Invalid parameters")

        try:
            self.users.document(request.ref_id).update({
                f"stats_{request.type}.clicks": firestore.Increment(1),
            })
        except NotFound as e:
            raise ResourceNotFoundError("Referrer not found") from e
        return {"success": True}

    def get_dashboard(self, uid: str) -> AffiliateDashboard:
        """Pre-aggregated referral stats of a user."""
        data = self.firebase.get_user(uid)
        if data is None:
            raise ResourceNotFoundError("ユーザー情報が見つかりません。")

        def stats(key: str) -> ReferralStats:
            raw = data.get(key) or {}
            return ReferralStats(clicks=raw.get("clicks") or 0, signups=raw.get("signups") or 0)

        return AffiliateDashboard(
            stats_user=stats("stats_user"),
            stats_adver=stats("stats_adver"),
            stats_recruit=stats("stats_recruit"),
            referral_rate=data.get("referralRate"),
            total_referrals_paid=data.get("totalReferralsPaid") or 0,
        )

    def save_payout_settings(self, uid: str, request: PayoutSettingsRequest) -> Dict[str, Any]:
        """
        Store the bank account used for payouts.

        Args:
            uid: Account owner
            request: Bank details

        Returns:
            Success message
        """
        request = validate_payout_settings(request)
        self.users.document(uid).set(
            {
                "payoutInfo": {
                    "bankName": request.bank_name,
                    "branchName": request.branch_name,
                    "accountType": request.account_type,
                    "accountNumber": request.account_number,
                    "accountHolderName": request.account_holder_name,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                }
            },
            merge=True,
        )
        logger.info(f"Saved payout settings for {uid}")
        return {"success": True, "message": "口座情報を保存しました。"}

    def get_referral_summary(self) -> ReferralSummary:
        """Count and total of all rewards."""
        docs = list(self.db.collection(settings.firestore_collection_rewards).stream())
        total = sum((doc.to_dict() or {}).get("amount") or 0 for doc in docs)
        return ReferralSummary(total_rewards_count=len(docs), total_rewards_amount=total)

    def record_referral_reward(self, invoice: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Record a reward for the referrer of the paying customer.

        Args:
            invoice: Stripe invoice object from `invoice.payment_succeeded`

        Returns:
            The reward document written, or None when nobody is rewarded
        """
        customer_id = invoice.get("customer")
        if not customer_id:
            return None

        query = self.users.where(filter=FieldFilter("stripeCustomerId", "==", customer_id)).limit(1)
        matches = list(query.stream())
        if not matches:
            return None

        referred_doc = matches[0]
        referred = referred_doc.to_dict() or {}
        referrer_id = referred.get("referrerId")
        if not referrer_id:
            return None

        referrer_ref = self.users.document(referrer_id)
        referrer_snap = referrer_ref.get()
        if not referrer_snap.exists:
            return None

        rate = (referrer_snap.to_dict() or {}).get("referralRate")
        if not rate:
            rate = select_referral_rate()
            referrer_ref.update({"referralRate": rate})
            logger.info(f"[{referrer_id}] First referral, rate set to {rate}")

        payment_amount = invoice.get("amount_paid") or 0
        created = invoice.get("created")
        reward = {
            "referrerUid": referrer_id,
            "referredUid": referred_doc.id,
            "referredUserEmail": referred.get("email"),
            "invoiceId": invoice.get("id"),
            "paymentAmount": payment_amount,
            "rewardAmount": reward_amount(payment_amount, rate),
            "rewardRate": rate,
            "rewardStatus": "pending",
            "paymentDate": datetime.fromtimestamp(created, tz=timezone.utc) if created else None,
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        self.db.collection(settings.firestore_collection_referral_rewards).add(reward)
        logger.info(f"[{referrer_id}] Reward of {reward['rewardAmount']} recorded (rate: {rate})")
        return reward

    def _revert(self, batch, payouts, group: PayoutGroup) -> None:
        for record_id in group.payout_record_ids:
            batch.update(payouts.document(record_id), {
                "status": "pending",
                "processingAt": firestore.DELETE_FIELD,
            })

    def run_referral_payouts(self) -> PayoutRunResult:
        """
        Pay every referrer whose pending rewards reach the minimum.

        Records are marked `processing` first, then either `paid` or reverted
        to `pending` with a failure reason.

        Returns:
            Summary of the run
        """
        payouts = self.db.collection(settings.firestore_collection_referral_payouts)
        pending = list(payouts.where(filter=FieldFilter("status", "==", "pending")).stream())
        if not pending:
            return PayoutRunResult(message=NOTHING_TO_PAY_MESSAGE)

        batch = self.db.batch()
        for doc in pending:
            batch.update(doc.reference, {
                "status": "processing",
                "processingAt": firestore.SERVER_TIMESTAMP,
            })
        batch.commit()

        groups = group_pending_payouts((doc.id, doc.to_dict() or {}) for doc in pending)
        today = date.today().isoformat()
        minimum = settings.minimum_payout_amount
        successful: List[SuccessfulPayout] = []
        failed: List[FailedPayout] = []

        batch = self.db.batch()
        for partner_id, group in groups.items():
            user = self.firebase.get_user(partner_id)
            reason = payout_rejection(group, user, minimum)
            if reason:
                self._revert(batch, payouts, group)
                failed.append(FailedPayout(partner_id=partner_id, reason=reason))
                continue

            try:
                transfer = self.stripe.create_transfer(
                    amount=group.unpaid_amount,
                    currency=settings.currency,
                    destination=user["stripeAccountId"],
                    metadata={
                        "referrer_id": partner_id,
                        "payout_reason": PAYOUT_REASON,
                    },
                )
            except (ConfigurationError, ExternalServiceError) as e:
                logger.error(f"Stripe transfer failed for {partner_id}: {e.message}")
                self._revert(batch, payouts, group)
                failed.append(FailedPayout(partner_id=partner_id, reason=str(e.details or e.message)))
                continue

            successful.append(SuccessfulPayout(
                partner_id=partner_id,
                amount=group.unpaid_amount,
                payout_id=transfer.id,
            ))
            for record_id in group.payout_record_ids:
                batch.update(payouts.document(record_id), {
                    "status": "paid",
                    "paidAt": firestore.SERVER_TIMESTAMP,
                    "payoutReferenceId": transfer.id,
                })
            batch.update(self.users.document(partner_id), {
                "lastReferralPaidDate": today,
                "totalReferralsPaid": firestore.Increment(group.unpaid_amount),
            })
        batch.commit()

        message = f"{len(successful)}件の支払いを実行し、{len(failed)}件が失敗しました。"
        logger.info(f"Referral payouts: {message}")
        return PayoutRunResult(
            total_partners_processed=len(groups),
            successful_payouts=successful,
            failed_payouts=failed,
            message=message,
        )
