"""
Mood tracker routes.
"""

from typing import Any, Dict, List
from fastapi import APIRouter, Depends

from ..dependencies import get_current_user, get_mood_service
from ..schemas.mood import MoodLogRequest
from ..schemas.user import AuthenticatedUser
from ..services.mood_service import MoodService

router = APIRouter(prefix="/api/mood", tags=["mood"])


@router.post("/logs")
def save_log(
    request: MoodLogRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: MoodService = Depends(get_mood_service),
) -> Dict[str, Any]:
    return service.save_log(user.uid, request)


@router.get("/logs")
def list_logs(
    user: AuthenticatedUser = Depends(get_current_user),
    service: MoodService = Depends(get_mood_service),
) -> List[Dict[str, Any]]:
    return [log.to_api() for log in service.list_logs(user.uid)]


@router.delete("/logs/{log_id}")
def delete_log(
    log_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: MoodService = Depends(get_mood_service),
) -> Dict[str, Any]:
    service.delete_log(user.uid, log_id)
    return {"success": True}


@router.get("/weekly")
def weekly(
    user: AuthenticatedUser = Depends(get_current_user),
    service: MoodService = Depends(get_mood_service),
) -> Dict[str, Any]:
    return service.get_weekly_summary(user.uid).to_api()
