"""
FastAPI dependency providers: services and the authenticated caller.
"""

from typing import Callable, Optional
from fastapi import Depends, Request
from loguru import logger

from .config import settings
from .exceptions import PermissionDeniedError
from .schemas.user import AuthenticatedUser, UserRole
from .services.admin_service import AdminService
from .services.ai_service import AiService
from .services.auth_service import AuthService
from .services.billing_service import BillingService
from .services.deal_service import DealService
from .services.matching_service import MatchingService
from .services.mood_service import MoodService
from .services.referral_service import ReferralService
from .services.weather_service import WeatherService
from .utils.api_clients import gemini_client, jma_client, stripe_client
from .utils.firebase_client import firebase_client

_weather_service: Optional[WeatherService] = None


def get_auth_service() -> AuthService:
    return AuthService(firebase_client)


def get_matching_service() -> MatchingService:
    return MatchingService(firebase_client, gemini_client)


def get_deal_service() -> DealService:
    return DealService(firebase_client)


def get_referral_service() -> ReferralService:
    return ReferralService(firebase_client, stripe_client)


def get_billing_service() -> BillingService:
    return BillingService(firebase_client, stripe_client)


def get_ai_service() -> AiService:
    return AiService(gemini_client, firebase_client)


def get_mood_service() -> MoodService:
    return MoodService(firebase_client)


def get_admin_service() -> AdminService:
    return AdminService(firebase_client)


def get_weather_service() -> WeatherService:
    """Shared instance so the caches live for the whole process."""
    global _weather_service
    if _weather_service is None:
        _weather_service = WeatherService(jma_client)
    return _weather_service


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token part of an `Authorization: Bearer ...` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthenticatedUser:
    """
    Resolve the caller from the session cookie or a Bearer ID token.

    Raises:
        AuthenticationError: If no valid credential was sent
    """
    return auth_service.verify_credentials(
        session_cookie=request.cookies.get(settings.session_cookie_name),
        bearer_token=extract_bearer_token(request.headers.get("Authorization")),
    )


def require_role(*roles: str) -> Callable[..., AuthenticatedUser]:
    """Dependency that admits only callers with one of the given roles."""

    def checker(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if user.role not in roles:
            logger.warning(f"User {user.uid} with role {user.role} denied (needs {roles})")
            raise PermissionDeniedError()
        return user

    return checker


require_admin = require_role(UserRole.ADMIN.value)
require_partner = require_role(UserRole.PARTNER.value)


def require_paid_partner(user: AuthenticatedUser = Depends(require_partner)) -> AuthenticatedUser:
    """Partners on the paid plan only."""
    if not user.is_paid:
        raise PermissionDeniedError("この機能は有料プラン限定です。", code="PRO_REQUIRED")
    return user
