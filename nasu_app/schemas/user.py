"""
User account, session and payout data models.
"""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import Field, field_validator

from .common import ApiModel


class UserRole(str, Enum):
    """Account roles stored on the user document."""
    USER = "user"
    PARTNER = "partner"
    ADMIN = "admin"


class AccountType(str, Enum):
    """Japanese bank account types."""
    ORDINARY = "普通"
    CHECKING = "当座"


class AuthenticatedUser(ApiModel):
    """Caller identity resolved from a session cookie or ID token."""

    uid: str = Field(..., description="Firebase Auth UID")
    role: str = Field(default=UserRole.USER.value, description="Account role")
    plan: Optional[str] = Field(default=None, description="Subscription plan, if any")
    is_paid: bool = Field(default=False, description="Paid partner plan flag")
    claims: Dict[str, Any] = Field(default_factory=dict, description="Decoded token claims")


class PayoutSettingsRequest(ApiModel):
    """Bank account submitted from the payout settings page."""

    bank_name: str = ""
    branch_name: str = ""
    account_type: str = ""
    account_number: str = ""
    account_holder_name: str = ""

    @field_validator("bank_name", "branch_name", "account_number", "account_holder_name", "account_type")
    @classmethod
    def strip_value(cls, v: str) -> str:
        return (v or "").strip()


class AdjustPointsRequest(ApiModel):
    """Admin point adjustment."""

    uid: str = ""
    amount: Optional[int] = None
    reason: str = ""


class SessionLoginResponse(ApiModel):
    """Result of exchanging an ID token for a session cookie."""

    success: bool = True
    role: str = UserRole.USER.value
