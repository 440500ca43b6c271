"""
Quick-match wizard, AI store finder, match counters and the partner targeting engine.
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query

from ..dependencies import get_matching_service, require_paid_partner, require_role
from ..schemas.matching import FindStoresRequest, MatchRecordRequest, QuickMatchSubmission, RunEngineRequest
from ..schemas.user import AuthenticatedUser, UserRole
from ..services.matching_service import MatchingService, build_results_query, get_catalogue

router = APIRouter(tags=["matching"])

require_partner_or_admin = require_role(UserRole.PARTNER.value, UserRole.ADMIN.value)


@router.get("/api/matching/catalogue")
def catalogue() -> Dict[str, Any]:
    return get_catalogue()


@router.post("/api/matching/quick-query")
def quick_query(submission: QuickMatchSubmission) -> Dict[str, Any]:
    """Validate wizard answers and return the query for the results page."""
    return {"query": build_results_query(submission)}


@router.get("/api/matching/results")
def results(
    main_category: str = Query("", alias="mainCategory"),
    sub_category: str = Query("", alias="subCategory"),
    area: Optional[str] = Query(None),
    values: str = Query(""),
    service: MatchingService = Depends(get_matching_service),
) -> List[Dict[str, Any]]:
    selected = [v for v in values.split(",") if v]
    return service.find_quick_match_results(main_category, sub_category, area, selected)


@router.post("/api/matching/record")
def record_match(
    request: MatchRecordRequest,
    service: MatchingService = Depends(get_matching_service),
) -> Dict[str, Any]:
    return service.record_match(request)


@router.post("/api/matching/find-stores")
async def find_stores(
    request: FindStoresRequest,
    service: MatchingService = Depends(get_matching_service),
) -> List[Dict[str, Any]]:
    """Rank stores against the finder answers."""
    stores = await service.find_stores(request)
    return [store.to_api() for store in stores]


@router.get("/api/partner/match-count")
def match_count(
    store_id: Optional[str] = Query(None, alias="storeId"),
    user: AuthenticatedUser = Depends(require_partner_or_admin),
    service: MatchingService = Depends(get_matching_service),
) -> Dict[str, Any]:
    """Quick-match totals for the caller's store; admins may name another store."""
    if user.role != UserRole.ADMIN.value or not store_id:
        store_id = user.uid
    count = service.get_match_count(store_id)
    return {"potentialCount": count.total_potential_matches, **count.to_api()}


@router.post("/api/ai-matching/run-engine")
def run_engine(
    request: RunEngineRequest,
    user: AuthenticatedUser = Depends(require_paid_partner),
    service: MatchingService = Depends(get_matching_service),
) -> Dict[str, Any]:
    metrics = service.run_targeting_engine(user.uid, request.accuracy_setting)
    return {"success": True, "metrics": metrics.to_api()}
