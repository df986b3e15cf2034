from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.providers import GeminiProvider, MockProvider, OpenAIProvider, create_provider
from shared.utils.provider_errors import AuthError, MalformedUpstreamResponse, TransportError


class TestCreateProvider:
    @pytest.mark.parametrize(
        "name, cls",
        [("mock", MockProvider), ("gemini", GeminiProvider), ("OpenAI", OpenAIProvider), ("bogus", GeminiProvider)],
    )
    def test_factory(self, settings, name, cls):
        provider = create_provider(settings.model_copy(update={"AI_PROVIDER": name}))
        assert type(provider) is cls


class TestGenerate:
    @pytest.mark.asyncio
    async def test_missing_credential_raises_auth_error(self, settings):
        provider = OpenAIProvider(settings)
        with pytest.raises(AuthError):
            await provider.generate("prompt")
        assert provider.client is None

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_sanitized(self, settings):
        provider = MockProvider(settings)
        with patch.object(
            provider, "_complete", new_callable=AsyncMock, side_effect=RuntimeError("SECRET token")
        ):
            with pytest.raises(TransportError) as ctx:
                await provider.generate("prompt")

        assert "SECRET" not in str(ctx.value)
        assert "SECRET" in ctx.value.internal_message

    @pytest.mark.asyncio
    async def test_blank_reply_is_malformed(self, settings):
        provider = MockProvider(settings, replies=["   "])
        with pytest.raises(MalformedUpstreamResponse):
            await provider.generate("prompt")

    @pytest.mark.asyncio
    async def test_mock_replies_in_order(self, settings):
        provider = MockProvider(settings, replies=["first", "second"])

        assert await provider.generate("a") == "first"
        assert await provider.generate("b") == "second"
        assert provider.prompts == ["a", "b"]

    @pytest.mark.asyncio
    async def test_openai_reply_text(self, settings):
        provider = OpenAIProvider(settings.model_copy(update={"AI_API_KEY": "sk-test"}))
        provider.client = MagicMock()
        provider.client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="[]"))]
        )

        assert await provider.generate("prompt", system_instruction="be brief") == "[]"
        messages = provider.client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "be brief"}
