"""Utility modules for the Minna no Nasu App backend."""

from .api_clients import GeminiClient, JmaClient, StripeClient
from .firebase_client import FirebaseClient
from .validators import validate_payout_settings, summarize_errors
from .helpers import TtlCache, rows_to_csv, now_jst

__all__ = [
    "GeminiClient",
    "JmaClient",
    "StripeClient",
    "FirebaseClient",
    "validate_payout_settings",
    "summarize_errors",
    "TtlCache",
    "rows_to_csv",
    "now_jst",
]
