"""
HTTP routers for the Minna no Nasu App API.
"""

from .admin import router as admin_router
from .ai import router as ai_router
from .auth import router as auth_router
from .billing import router as billing_router
from .deals import router as deals_router
from .matching import router as matching_router
from .mood import router as mood_router
from .referral import router as referral_router
from .weather import router as weather_router

ALL_ROUTERS = [
    auth_router,
    matching_router,
    deals_router,
    referral_router,
    billing_router,
    ai_router,
    mood_router,
    weather_router,
    admin_router,
]

__all__ = [
    "ALL_ROUTERS",
    "admin_router",
    "ai_router",
    "auth_router",
    "billing_router",
    "deals_router",
    "matching_router",
    "mood_router",
    "referral_router",
    "weather_router",
]
