"""
AI utility pages and the company profile review.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends

from ..dependencies import get_ai_service
from ..schemas.ai import AiReviewRequest
from ..services.ai_service import AiService

router = APIRouter(tags=["ai"])


@router.post("/api/ai-review")
async def ai_review(
    request: AiReviewRequest,
    service: AiService = Depends(get_ai_service),
) -> Dict[str, Any]:
    return await service.review_profile(request.uid)


@router.post("/api/ai/{template}")
async def run_template(
    template: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    service: AiService = Depends(get_ai_service),
) -> Dict[str, Any]:
    """Run one AI utility page (daily-fortune, life-hacks, recipe, palmistry, ...)."""
    result = await service.run_template(template, payload)
    return result.to_api()
