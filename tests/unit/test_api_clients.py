"""
Unit tests for the external API clients.
"""

import pytest
import stripe
from unittest.mock import AsyncMock, MagicMock, patch

from nasu_app.exceptions import ConfigurationError, ExternalServiceError
from nasu_app.utils.api_clients import GeminiClient, StripeClient, parse_json_text


class TestParseJsonText:
    """Tests for parse_json_text."""

    def test_plain_json(self):
        assert parse_json_text('{"keywords": ["パン"]}') == {"keywords": ["パン"]}

    def test_fenced_json(self):
        assert parse_json_text('```json\n{"a": 1}\n```') == {"a": 1}

    def test_invalid_json(self):
        with pytest.raises(ExternalServiceError):
            parse_json_text("大吉です")


class TestGeminiClient:
    """Tests for GeminiClient."""

    def test_missing_key(self):
        client = GeminiClient(api_key="")
        with pytest.raises(ConfigurationError):
            client.ensure_configured()

    @pytest.mark.asyncio
    async def test_generate_json(self):
        client = GeminiClient(api_key="test-key", model_name="gemini-test")
        fake = MagicMock()
        fake.aio.models.generate_content = AsyncMock(return_value=MagicMock(text='{"status": "approved"}'))
        client._client = fake

        result = await client.generate_json("prompt", {"type": "OBJECT"})

        assert result == {"status": "approved"}
        assert fake.aio.models.generate_content.await_args.kwargs["model"] == "gemini-test"

    @pytest.mark.asyncio
    async def test_api_failure(self):
        client = GeminiClient(api_key="test-key")
        fake = MagicMock()
        fake.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("quota"))
        client._client = fake

        with pytest.raises(ExternalServiceError):
            await client.generate_text("prompt")

    @pytest.mark.asyncio
    async def test_empty_response(self):
        client = GeminiClient(api_key="test-key")
        fake = MagicMock()
        fake.aio.models.generate_content = AsyncMock(return_value=MagicMock(text=""))
        client._client = fake

        with pytest.raises(ExternalServiceError):
            await client.generate_text("prompt")


class TestStripeClient:
    """Tests for StripeClient."""

    def test_missing_secret_key(self):
        with pytest.raises(ConfigurationError):
            StripeClient(secret_key="").create_transfer(amount=100)

    def test_webhook_requires_signature(self):
        client = StripeClient(secret_key="sk_test", webhook_secret="whsec_test")
        with pytest.raises(ValueError):
            client.parse_webhook_event(b"{}", None)

    def test_webhook_verified(self):
        client = StripeClient(secret_key="sk_test", webhook_secret="whsec_test")
        with patch("nasu_app.utils.api_clients.stripe.WebhookSignature.verify_header") as verify:
            event = client.parse_webhook_event(b'{"type": "invoice.payment_succeeded"}', "t=1,v1=abc")

        verify.assert_called_once_with('{"type": "invoice.payment_succeeded"}', "t=1,v1=abc", "whsec_test")
        assert event == {"type": "invoice.payment_succeeded"}

    def test_webhook_bad_signature(self):
        client = StripeClient(secret_key="sk_test", webhook_secret="whsec_test")
        with pytest.raises(ValueError):
            client.parse_webhook_event(b"{}", "t=1,v1=bad")

    def test_sdk_error_becomes_external_service_error(self):
        client = StripeClient(secret_key="sk_test")
        with patch(
            "nasu_app.utils.api_clients.stripe.Transfer.create",
            side_effect=stripe.InvalidRequestError("No such destination", "destination"),
        ):
            with pytest.raises(ExternalServiceError) as exc_info:
                client.create_transfer(amount=3000, currency="jpy", destination="acct_missing")

        assert exc_info.value.status_code == 502
        assert exc_info.value.details == "No such destination"

    def test_cancel_subscription(self):
        client = StripeClient(secret_key="sk_test")
        with patch("nasu_app.utils.api_clients.stripe.Subscription.modify") as modify:
            client.cancel_subscription_at_period_end("sub_1")

        modify.assert_called_once_with("sub_1", cancel_at_period_end=True)
