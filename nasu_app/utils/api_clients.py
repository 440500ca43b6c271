"""
External API clients for the Minna no Nasu App backend.
Handles communication with Gemini, Stripe and the Japan Meteorological Agency.
"""

import json
import re
from typing import Any, Callable, Dict, List, Optional
import aiohttp
import stripe
from google import genai
from google.genai import types
from loguru import logger

from ..config import settings
from ..exceptions import ConfigurationError, ExternalServiceError

_JSON_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def parse_json_text(text: str) -> Any:
    """
    Parse a JSON answer from the model, tolerating a ```json fence.

    Args:
        text: Raw response text

    Returns:
        Decoded JSON value

    Raises:
        ExternalServiceError: If the text is not valid JSON
    """
    cleaned = text.strip()
    match = _JSON_FENCE.match(cleaned)
    if match:
        cleaned = match.group(1)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Gemini returned invalid JSON: {e}; text={text[:200]!r}")
        raise ExternalServiceError("AIの応答形式が不正です。") from e


class GeminiClient:
    """Async client for the Gemini generateContent API."""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.get_gemini_api_key()
        self.model_name = model_name or settings.gemini_model_name
        self._client = None

    def ensure_configured(self) -> None:
        """Raise ConfigurationError when no API key is set."""
        if not self.api_key:
            logger.error("Gemini API key is not set (GEMINI_API_KEY / GOOGLE_API_KEY)")
            raise ConfigurationError("サーバーの設定エラー: AIのAPIキーが設定されていません。")

    @property
    def client(self) -> genai.Client:
        """Get or create the google-genai client."""
        self.ensure_configured()
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _generate(self, contents: Any, config: types.GenerateContentConfig) -> str:
        client = self.client
        try:
            response = await client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except Exception as e:
            logger.error(f"Gemini API call failed: {e}")
            raise ExternalServiceError("AIの呼び出しに失敗しました。") from e

        text = response.text
        if not text:
            logger.error("Gemini returned an empty response")
            raise ExternalServiceError("AIから有効な応答がありませんでした。")
        return text

    async def generate_text(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        image: Optional[bytes] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Generate free-form text.

        Args:
            prompt: User prompt
            system_instruction: Optional system prompt
            image: Optional JPEG bytes sent inline after the prompt
            temperature: Sampling temperature (settings default when None)

        Returns:
            Generated text
        """
        contents: List[Any] = [prompt]
        if image is not None:
            contents.append(types.Part.from_bytes(data=image, mime_type="image/jpeg"))

        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature if temperature is not None else settings.gemini_temperature,
        )
        return await self._generate(contents, config)

    async def generate_json(
        self,
        prompt: str,
        schema: Dict[str, Any],
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Any:
        """
        Generate a JSON answer constrained by a response schema.

        Args:
            prompt: User prompt
            schema: Response schema (OpenAPI subset)
            system_instruction: Optional system prompt
            temperature: Sampling temperature (settings default when None)

        Returns:
            Decoded JSON value
        """
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type="application/json",
            response_schema=schema,
            temperature=temperature if temperature is not None else settings.gemini_temperature,
        )
        text = await self._generate(prompt, config)
        return parse_json_text(text)


class JmaClient:
    """Client for the Japan Meteorological Agency open data."""

    def __init__(self, user_agent: Optional[str] = None, timeout: Optional[int] = None):
        self.user_agent = user_agent or settings.weather_user_agent
        self.timeout = timeout or settings.api_timeout

    def _get_headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent}

    async def _get(self, url: str, as_json: bool) -> Any:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url,
                headers=self._get_headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    logger.error(f"JMA request failed: {response.status} {response.reason} url='{url}'")
                response.raise_for_status()
                if as_json:
                    return await response.json(content_type=None)
                return await response.text(encoding="utf-8")

    async def get_json(self, url: str) -> Any:
        """Fetch and decode a JMA JSON document."""
        return await self._get(url, as_json=True)

    async def get_text(self, url: str) -> str:
        """Fetch a JMA XML document as text."""
        return await self._get(url, as_json=False)


class StripeClient:
    """Thin wrapper around the Stripe SDK configured from settings."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.secret_key = secret_key if secret_key is not None else settings.stripe_secret_key
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.stripe_webhook_secret

    def _configure(self) -> None:
        if not self.secret_key:
            logger.error("STRIPE_SECRET_KEY is not set")
            raise ConfigurationError("サーバーの設定エラー: 決済キーが設定されていません。")
        stripe.api_key = self.secret_key
        if settings.stripe_api_version:
            stripe.api_version = settings.stripe_api_version

    def _call(self, action: str, method: Callable[..., Any], *args, **kwargs) -> Any:
        self._configure()
        try:
            return method(*args, **kwargs)
        except stripe.StripeError as e:
            logger.error(f"Stripe {action} failed: {e}")
            raise ExternalServiceError(
                "決済サービスでエラーが発生しました。",
                details=e.user_message or str(e),
            ) from e

    def create_checkout_session(self, **params) -> Any:
        """Create a Checkout Session."""
        return self._call("checkout session", stripe.checkout.Session.create, **params)

    def create_transfer(self, **params) -> Any:
        """Create a Connect transfer."""
        return self._call("transfer", stripe.Transfer.create, **params)

    def cancel_subscription_at_period_end(self, subscription_id: str) -> Any:
        """Schedule a subscription to cancel at the end of the current period."""
        return self._call(
            "subscription cancel",
            stripe.Subscription.modify,
            subscription_id,
            cancel_at_period_end=True,
        )

    def parse_webhook_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook signature and decode the event.

        Args:
            payload: Raw request body
            signature: Value of the Stripe-Signature header

        Returns:
            Event as a plain dict

        Raises:
            ValueError: If the signature is missing or invalid
        """
        if not signature or not self.webhook_secret:
            raise ValueError("Missing Stripe signature or webhook secret")
        body = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise ValueError(str(e)) from e
        return json.loads(body)


# Global client instances
gemini_client = GeminiClient()
jma_client = JmaClient()
stripe_client = StripeClient()
