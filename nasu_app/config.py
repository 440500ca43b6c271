"""
Configuration management for the Minna no Nasu App backend.
Loads settings from environment variables and provides typed configuration access.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    environment: str = Field(default="development", description="Environment: development, staging, production")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Enable debug mode")
    site_origin: str = Field(
        default="http://localhost:3000",
        description="Public origin used to build redirect URLs"
    )

    # Firebase
    firebase_project_id: Optional[str] = Field(default=None, description="Firebase project ID")
    firebase_credentials_path: Optional[str] = Field(
        default=None,
        description="Path to a Firebase service account JSON"
    )
    app_id: str = Field(
        default="default-app-id",
        description="Artifact namespace used by the per-app collections"
    )

    # Firestore collections
    firestore_collection_users: str = Field(default="users", description="Firestore collection for user accounts")
    firestore_collection_partners: str = Field(default="partners", description="Firestore collection for partners")
    firestore_collection_stores: str = Field(default="stores", description="Firestore collection for stores")
    firestore_collection_deals: str = Field(default="deals", description="Firestore collection for point deals")
    firestore_collection_store_deals: str = Field(
        default="storeDeals",
        description="Firestore collection for partner announcements"
    )
    firestore_collection_food_loss_deals: str = Field(
        default="foodLossDeals",
        description="Firestore collection for food-loss deals"
    )
    firestore_collection_transactions: str = Field(
        default="transactions",
        description="Firestore collection for point transactions"
    )
    firestore_collection_match_counters: str = Field(
        default="storeMatchCounters",
        description="Firestore collection for quick-match counters"
    )
    firestore_collection_jobs: str = Field(default="jobs", description="Firestore collection for job postings")
    firestore_collection_matches: str = Field(default="matches", description="Firestore collection for job match scores")
    firestore_collection_rewards: str = Field(default="rewards", description="Firestore collection for rewards")
    firestore_collection_referral_rewards: str = Field(
        default="referralRewards",
        description="Firestore collection for referral rewards"
    )
    firestore_collection_referral_payouts: str = Field(
        default="referralPayouts",
        description="Firestore collection for pending referral payouts"
    )

    # Sessions
    session_cookie_name: str = Field(default="token", description="Name of the session cookie")
    session_expires_days: int = Field(default=14, description="Session cookie lifetime in days")

    # Gemini AI
    gemini_api_key: str = Field(default="", description="Gemini API key (GEMINI_API_KEY)")
    google_api_key: str = Field(default="", description="Fallback Google API key (GOOGLE_API_KEY)")
    gemini_model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model name for the AI utility pages"
    )
    gemini_temperature: Optional[float] = Field(
        default=None,
        description="Default Gemini temperature (model default when unset)"
    )
    store_criteria_temperature: float = Field(
        default=0.2,
        description="Temperature used when extracting store search criteria"
    )

    # Stripe
    stripe_secret_key: str = Field(default="", description="Stripe secret key")
    stripe_webhook_secret: str = Field(default="", description="Stripe webhook signing secret")
    stripe_api_version: Optional[str] = Field(default=None, description="Pinned Stripe API version")
    currency: str = Field(default="jpy", description="Billing currency")
    platform_fee_rate: float = Field(default=0.20, description="Platform fee taken on marketplace checkouts")
    reissue_fee_rate: float = Field(default=0.05, description="Fee rate for reissuing expired points")
    minimum_payout_amount: int = Field(default=3000, description="Minimum referral payout in JPY")

    # Referral
    referral_campaign_rate: float = Field(default=0.30, description="Referral rate during the launch campaign")
    referral_standard_rate: float = Field(default=0.20, description="Referral rate after the campaign")
    referral_campaign_end: datetime = Field(
        default=datetime.fromisoformat("2025-08-31T23:59:59+09:00"),
        description="End of the referral launch campaign (JST)"
    )

    # Weather (Japan Meteorological Agency)
    jma_forecast_url: str = Field(
        default="https://www.jma.go.jp/bosai/forecast/data/forecast/090000.json",
        description="JMA forecast JSON for Tochigi prefecture"
    )
    jma_atom_feed_url: str = Field(
        default="https://xml.kishou.go.jp/feed/list.xml",
        description="JMA Atom feed listing the latest reports"
    )
    weather_user_agent: str = Field(
        default="Minna-no-Nasu-App/1.0 (Contact: support@nasu-app.jp)",
        description="User-Agent sent to JMA"
    )
    forecast_cache_ttl: int = Field(default=3600, description="Forecast cache TTL in seconds")
    warnings_cache_ttl: int = Field(default=600, description="Warnings cache TTL in seconds")

    # API Settings
    api_timeout: int = Field(default=30, description="Outbound request timeout in seconds")

    def get_gemini_api_key(self) -> str:
        """GEMINI_API_KEY first, then GOOGLE_API_KEY."""
        return self.gemini_api_key or self.google_api_key

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings


# Convenience access
settings = get_settings()
