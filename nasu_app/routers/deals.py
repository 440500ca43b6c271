"""
Store search, point deals, ticket redemption and partner deal management.
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_current_user, get_deal_service, require_partner
from ..exceptions import ValidationError
from ..schemas.store import PurchaseDealRequest, RedeemTicketRequest, StoreDealRequest
from ..schemas.user import AuthenticatedUser
from ..services.deal_service import DealService

router = APIRouter(tags=["deals"])


@router.get("/api/deals/search")
def search_stores(
    main_category: Optional[str] = Query(None, alias="mainCategory"),
    sub_category: Optional[str] = Query(None, alias="subCategory"),
    area: Optional[str] = Query(None),
    service: DealService = Depends(get_deal_service),
) -> List[Dict[str, Any]]:
    """Approved stores; each parameter must be sent, an empty value skips that filter."""
    if main_category is None or sub_category is None or area is None:
        raise ValidationError("Missing query parameters")
    return service.search_stores(main_category, sub_category, area)


@router.post("/api/deals/purchase")
def purchase_deal(
    request: PurchaseDealRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: DealService = Depends(get_deal_service),
) -> Dict[str, Any]:
    return service.purchase_deal(user.uid, request.deal_id)


@router.post("/api/deals/redeem")
def redeem_ticket(
    request: RedeemTicketRequest,
    user: AuthenticatedUser = Depends(require_partner),
    service: DealService = Depends(get_deal_service),
) -> Dict[str, Any]:
    return service.redeem_ticket(user.uid, request.user_id, request.purchased_deal_id)


@router.post("/api/partner/deals", status_code=status.HTTP_201_CREATED)
def create_store_deal(
    request: StoreDealRequest,
    user: AuthenticatedUser = Depends(require_partner),
    service: DealService = Depends(get_deal_service),
) -> Dict[str, Any]:
    deal = service.create_store_deal(user.uid, request)
    return {"success": True, "newDeal": deal}


@router.post("/api/partner/food-loss/{deal_id}/close")
def close_food_loss_deal(
    deal_id: str,
    user: AuthenticatedUser = Depends(require_partner),
    service: DealService = Depends(get_deal_service),
) -> Dict[str, Any]:
    return service.close_food_loss_deal(user.uid, deal_id)


@router.post("/api/partner/food-loss/{deal_id}/end")
def end_food_loss_deal(
    deal_id: str,
    user: AuthenticatedUser = Depends(require_partner),
    service: DealService = Depends(get_deal_service),
) -> Dict[str, Any]:
    return service.end_food_loss_deal(user.uid, deal_id)
