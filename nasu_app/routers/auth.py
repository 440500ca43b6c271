"""
Session login/logout and the caller's role.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, Request, Response

from ..config import settings
from ..dependencies import extract_bearer_token, get_auth_service, get_current_user
from ..exceptions import AuthenticationError
from ..schemas.user import AuthenticatedUser, SessionLoginResponse
from ..services.auth_service import AuthService

router = APIRouter(tags=["auth"])


@router.post("/api/auth/session-login")
def session_login(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Exchange a Firebase ID token for the session cookie."""
    id_token = extract_bearer_token(request.headers.get("Authorization"))
    if not id_token:
        raise AuthenticationError("Authorization header is missing.")

    session_cookie, role = auth_service.create_session(id_token)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_cookie,
        max_age=settings.session_expires_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production(),
        samesite="lax",
        path="/",
    )
    return SessionLoginResponse(success=True, role=role).to_api()


@router.post("/api/auth/logout")
def logout(response: Response) -> Dict[str, Any]:
    response.delete_cookie(key=settings.session_cookie_name, path="/")
    return {"success": True}


@router.get("/api/user/role")
def get_role(user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    """Role and plan of the signed-in user."""
    return {
        "uid": user.uid,
        "role": user.role,
        "plan": user.plan,
        "isPaid": user.is_paid,
    }
