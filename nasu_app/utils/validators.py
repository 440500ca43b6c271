"""
Input validation and sanitization utilities.
"""

import re
from typing import Any, Dict, Iterable, List

from ..exceptions import ValidationError
from ..schemas.user import AccountType, PayoutSettingsRequest

ACCOUNT_NUMBER_PATTERN = re.compile(r"^\d{7}$")


def is_blank(value: Any) -> bool:
    """True for None, empty strings and whitespace."""
    return value is None or (isinstance(value, str) and not value.strip())


def validate_account_number(account_number: str) -> bool:
    """
    Validate a Japanese bank account number.

    Args:
        account_number: Account number as typed

    Returns:
        True if it is exactly 7 digits
    """
    return bool(ACCOUNT_NUMBER_PATTERN.match(account_number or ""))


def validate_payout_settings(request: PayoutSettingsRequest) -> PayoutSettingsRequest:
    """
    Validate the payout settings form.

    Args:
        request: Submitted bank account

    Returns:
        The same request when valid

    Raises:
        ValidationError: On a blank field, unknown account type or bad account number
    """
    values = request.model_dump()
    if any(not values[field] for field in values):
        raise ValidationError("すべての項目を入力してください。")

    if request.account_type not in {t.value for t in AccountType}:
        raise ValidationError("口座種別は「普通」または「当座」を選択してください。")

    if not validate_account_number(request.account_number):
        raise ValidationError("口座番号は7桁の数字で入力してください。")

    return request


def summarize_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reduce pydantic error entries to JSON-safe location, message and type."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in errors
    ]
