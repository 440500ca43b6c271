"""
Session and role handling on top of Firebase Auth.
"""

from datetime import timedelta
from typing import Any, Dict, Optional, Tuple
from firebase_admin import auth as firebase_auth
from loguru import logger

from ..config import settings
from ..exceptions import AuthenticationError, ExternalServiceError
from ..schemas.user import AuthenticatedUser, UserRole
from ..utils.firebase_client import FirebaseClient

_EXPIRED_ERRORS = (
    firebase_auth.ExpiredSessionCookieError,
    firebase_auth.RevokedSessionCookieError,
    firebase_auth.ExpiredIdTokenError,
    firebase_auth.RevokedIdTokenError,
    firebase_auth.UserDisabledError,
    firebase_auth.UserNotFoundError,
)
_INVALID_ERRORS = (
    firebase_auth.InvalidSessionCookieError,
    firebase_auth.InvalidIdTokenError,
    ValueError,
)

RELOGIN_MESSAGE = "セッションの有効期限が切れました。再度ログインしてください。"
CERTIFICATE_ERROR_MESSAGE = "認証サービスに接続できませんでした。時間をおいて再度お試しください。"


class AuthService:
    """Exchanges ID tokens for session cookies and resolves callers."""

    def __init__(self, firebase: FirebaseClient):
        self.firebase = firebase

    def create_session(self, id_token: str) -> Tuple[str, str]:
        """
        Verify an ID token and mint a session cookie.

        Args:
            id_token: Firebase ID token from the browser

        Returns:
            Tuple of (session cookie, role)

        Raises:
            AuthenticationError: If the token is invalid or the user document is missing
        """
        try:
            decoded = self.firebase.auth.verify_id_token(id_token)
        except (*_EXPIRED_ERRORS, *_INVALID_ERRORS) as e:
            logger.warning(f"Session login rejected: {e}")
            raise AuthenticationError("Authentication failed.") from e
        except firebase_auth.CertificateFetchError as e:
            logger.error(f"Could not fetch Firebase public keys: {e}")
            raise ExternalServiceError(CERTIFICATE_ERROR_MESSAGE) from e

        uid = decoded["uid"]
        user_data = self.firebase.get_user(uid)
        if user_data is None:
            logger.warning(f"Session login for {uid} without a user document")
            raise AuthenticationError("User data not found.")

        role = user_data.get("role") or UserRole.USER.value
        expires_in = timedelta(days=settings.session_expires_days)
        session_cookie = self.firebase.auth.create_session_cookie(id_token, expires_in=expires_in)

        logger.info(f"Session created for {uid} (role: {role})")
        return session_cookie, role

    def verify_credentials(
        self,
        session_cookie: Optional[str] = None,
        bearer_token: Optional[str] = None,
    ) -> AuthenticatedUser:
        """
        Resolve the caller from the session cookie, falling back to a Bearer ID token.

        Args:
            session_cookie: Value of the session cookie, if sent
            bearer_token: ID token from the Authorization header, if sent

        Returns:
            Authenticated caller

        Raises:
            AuthenticationError: If neither credential is present or valid
        """
        if not session_cookie and not bearer_token:
            raise AuthenticationError()

        try:
            if session_cookie:
                claims = self.firebase.auth.verify_session_cookie(session_cookie, check_revoked=True)
            else:
                claims = self.firebase.auth.verify_id_token(bearer_token, check_revoked=True)
        except _EXPIRED_ERRORS as e:
            logger.info(f"Expired or revoked credential: {e}")
            raise AuthenticationError(RELOGIN_MESSAGE) from e
        except _INVALID_ERRORS as e:
            logger.warning(f"Invalid credential: {e}")
            raise AuthenticationError(RELOGIN_MESSAGE) from e
        except firebase_auth.CertificateFetchError as e:
            logger.error(f"Could not fetch Firebase public keys: {e}")
            raise ExternalServiceError(CERTIFICATE_ERROR_MESSAGE) from e

        return self.build_user(claims)

    def build_user(self, claims: Dict[str, Any]) -> AuthenticatedUser:
        """Build the caller from token claims, reading the user document for a missing role."""
        uid = claims.get("uid") or claims.get("user_id") or claims.get("sub")
        role = claims.get("role")
        if not role:
            user_data = self.firebase.get_user(uid) or {}
            role = user_data.get("role") or UserRole.USER.value

        return AuthenticatedUser(
            uid=uid,
            role=role,
            plan=claims.get("plan") or claims.get("stripeRole"),
            is_paid=claims.get("isPaid") is True,
            claims=claims,
        )

    def set_plan_claim(self, uid: str, plan: str) -> None:
        """Set the `stripeRole` custom claim, keeping the other claims."""
        user_record = self.firebase.auth.get_user(uid)
        claims = dict(user_record.custom_claims or {})
        claims["stripeRole"] = plan
        self.firebase.auth.set_custom_user_claims(uid, claims)
        logger.info(f"Set stripeRole={plan} for {uid}")
