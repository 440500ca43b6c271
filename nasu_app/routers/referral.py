"""
Affiliate click tracking, the referral dashboard and payout settings.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends

from ..dependencies import get_current_user, get_referral_service
from ..schemas.billing import TrackClickRequest
from ..schemas.user import AuthenticatedUser, PayoutSettingsRequest
from ..services.referral_service import ReferralService

router = APIRouter(tags=["referral"])


@router.post("/api/affiliate/track-click")
def track_click(
    request: TrackClickRequest,
    service: ReferralService = Depends(get_referral_service),
) -> Dict[str, Any]:
    return service.track_click(request)


@router.get("/api/affiliate/dashboard")
def affiliate_dashboard(
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReferralService = Depends(get_referral_service),
) -> Dict[str, Any]:
    return service.get_dashboard(user.uid).to_api()


@router.post("/api/payout/settings")
def save_payout_settings(
    request: PayoutSettingsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ReferralService = Depends(get_referral_service),
) -> Dict[str, Any]:
    return service.save_payout_settings(user.uid, request)
