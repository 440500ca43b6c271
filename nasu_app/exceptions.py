"""
Application error types.
Every error carries a user-facing message and maps to one HTTP status code.
"""

from typing import Any, Optional


class NasuAppError(Exception):
    """Base exception for the Minna no Nasu App backend."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Any] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(NasuAppError):
    """Raised when request input is missing or malformed."""

    def __init__(self, message: str = "入力内容に誤りがあります。", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, details=details)


class AuthenticationError(NasuAppError):
    """Raised when the caller has no valid session or ID token."""

    def __init__(self, message: str = "認証が必要です。", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class PermissionDeniedError(NasuAppError):
    """Raised when the caller lacks the role or plan for an operation."""

    def __init__(
        self,
        message: str = "アクセス権がありません。",
        code: str = "FORBIDDEN",
        details: Optional[Any] = None
    ):
        super().__init__(message, code=code, status_code=403, details=details)


class ResourceNotFoundError(NasuAppError):
    """Raised when a requested document does not exist."""

    def __init__(self, message: str = "対象のデータが見つかりません。", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ConflictError(NasuAppError):
    """Raised when the document is in a state that forbids the operation."""

    def __init__(self, message: str = "現在この操作は実行できません。", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)


class ConfigurationError(NasuAppError):
    """Raised when a required server-side setting is missing."""

    def __init__(self, message: str = "サーバーの設定エラーです。", details: Optional[Any] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", status_code=500, details=details)


class ExternalServiceError(NasuAppError):
    """Raised when Gemini, Stripe or JMA fails."""

    def __init__(self, message: str = "外部サービスでエラーが発生しました。", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)
