"""
Stripe checkout and referral models.
"""

from enum import Enum
from typing import List, Optional
from pydantic import Field

from .common import ApiModel


class CheckoutRequest(ApiModel):
    """Marketplace checkout of a single item."""

    price: Optional[int] = Field(default=None, description="Price in JPY")
    product_name: Optional[str] = None
    seller_stripe_id: Optional[str] = Field(default=None, description="Seller's Connect account")
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutSessionResponse(ApiModel):
    session_id: str
    url: Optional[str] = None


class ReferralType(str, Enum):
    """Which referral link was clicked."""
    USER = "user"
    ADVER = "adver"
    RECRUIT = "recruit"


class TrackClickRequest(ApiModel):
    ref_id: str = ""
    type: str = ""


class ReferralStats(ApiModel):
    clicks: int = 0
    signups: int = 0


class AffiliateDashboard(ApiModel):
    """Pre-aggregated referral stats of the caller."""

    stats_user: ReferralStats = Field(default_factory=ReferralStats)
    stats_adver: ReferralStats = Field(default_factory=ReferralStats)
    stats_recruit: ReferralStats = Field(default_factory=ReferralStats)
    referral_rate: Optional[float] = None
    total_referrals_paid: int = 0


class ReferralSummary(ApiModel):
    total_rewards_count: int = 0
    total_rewards_amount: int = 0


class PayoutGroup(ApiModel):
    """Pending payout records of one referrer."""

    partner_id: str
    unpaid_amount: int = 0
    payout_record_ids: List[str] = Field(default_factory=list)


class SuccessfulPayout(ApiModel):
    partner_id: str
    amount: int
    payout_id: str


class FailedPayout(ApiModel):
    partner_id: str
    reason: str


class PayoutRunResult(ApiModel):
    success: bool = True
    total_partners_processed: int = 0
    successful_payouts: List[SuccessfulPayout] = Field(default_factory=list)
    failed_payouts: List[FailedPayout] = Field(default_factory=list)
    message: str = ""
