"""Services that back the HTTP routes and the CLI."""

from .admin_service import AdminService
from .ai_service import AiService
from .auth_service import AuthService
from .billing_service import BillingService
from .deal_service import DealService
from .matching_service import MatchingService
from .mood_service import MoodService
from .referral_service import ReferralService
from .weather_service import WeatherService

__all__ = [
    "AdminService",
    "AiService",
    "AuthService",
    "BillingService",
    "DealService",
    "MatchingService",
    "MoodService",
    "ReferralService",
    "WeatherService",
]
