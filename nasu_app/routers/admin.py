"""
Admin panel routes. Every route requires the admin role.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, Response

from ..dependencies import (
    get_admin_service,
    get_matching_service,
    get_referral_service,
    require_admin,
)
from ..schemas.user import AdjustPointsRequest
from ..services.admin_service import EXPORT_FILENAME, AdminService
from ..services.matching_service import MatchingService
from ..services.referral_service import ReferralService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/dashboard")
def dashboard(service: AdminService = Depends(get_admin_service)) -> Dict[str, int]:
    return service.get_dashboard()


@router.get("/export-users")
def export_users(service: AdminService = Depends(get_admin_service)) -> Response:
    """All users as a CSV attachment."""
    csv_text = service.export_users_csv()
    return Response(
        content=csv_text.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post("/adjust-points")
def adjust_points(
    request: AdjustPointsRequest,
    service: AdminService = Depends(get_admin_service),
) -> Dict[str, Any]:
    return service.adjust_points(request)


@router.get("/referral-summary")
def referral_summary(service: ReferralService = Depends(get_referral_service)) -> Dict[str, Any]:
    return service.get_referral_summary().to_api()


@router.post("/recalculate-matches")
def recalculate_matches(service: MatchingService = Depends(get_matching_service)) -> Dict[str, Any]:
    written = service.recalculate_all_matches()
    return {"success": True, "matchesWritten": written}


@router.post("/payout-referral-rewards")
def payout_referral_rewards(service: ReferralService = Depends(get_referral_service)) -> Dict[str, Any]:
    return service.run_referral_payouts().to_api()
