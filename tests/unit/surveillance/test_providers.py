"""
Unit tests for the chat-completion provider clients.

A Mock session stands in for requests.Session.
"""

import json
from unittest.mock import Mock

import pytest
import requests

from surveillance.config.settings import ProviderConfig, PROVIDER_AZURE_OPENAI, PROVIDER_OPENAI_COMPATIBLE
from surveillance.core.exceptions import ProviderError
from surveillance.providers import (
    AzureOpenAIClient,
    OpenAICompatibleClient,
    create_provider_chain,
    create_provider_client,
)
from surveillance.providers.base import ChatCompletionClient


def make_response(status_code=200, body=None, text=None):
    response = Mock()
    response.status_code = status_code
    response.text = text if text is not None else json.dumps(body or {})
    if body is None and text is not None:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = body or {}
    return response


def completion(content, model="gpt-4o"):
    return {
        "model": model,
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 120, "completion_tokens": 40},
    }


@pytest.fixture
def azure_config():
    return ProviderConfig(
        name="azure-openai",
        kind=PROVIDER_AZURE_OPENAI,
        endpoint="https://example-resource.openai.azure.com/",
        api_key="azure-key",
        deployment="surveillance-gpt",
        api_version="2024-02-15-preview",
    )


@pytest.fixture
def gateway_config():
    return ProviderConfig(
        name="ai-gateway",
        kind=PROVIDER_OPENAI_COMPATIBLE,
        endpoint="https://gateway.example.com/v1/chat/completions",
        api_key="gateway-key",
        model="google/gemini-3-flash-preview",
    )


MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


class TestAzureOpenAIClient:
    """Tests for AzureOpenAIClient."""

    def test_request_shape(self, azure_config):
        session = Mock()
        session.post.return_value = make_response(body=completion('{"ok": true}'))
        client = AzureOpenAIClient(azure_config, session=session)

        response = client.chat(MESSAGES, temperature=0.2, max_tokens=300)

        url = session.post.call_args[0][0]
        kwargs = session.post.call_args[1]
        assert url == (
            "https://example-resource.openai.azure.com/openai/deployments/surveillance-gpt"
            "/chat/completions?api-version=2024-02-15-preview"
        )
        assert kwargs["headers"]["api-key"] == "azure-key"
        assert json.loads(kwargs["data"]) == {"messages": MESSAGES, "temperature": 0.2, "max_tokens": 300}
        assert kwargs["timeout"] == 30
        assert response.content == '{"ok": true}'
        assert response.usage == {"prompt_tokens": 120, "completion_tokens": 40}

    def test_non_2xx_raises_with_status(self, azure_config):
        session = Mock()
        session.post.return_value = make_response(status_code=429, text="Too Many Requests")
        client = AzureOpenAIClient(azure_config, session=session)

        with pytest.raises(ProviderError) as exc_info:
            client.chat(MESSAGES)

        assert exc_info.value.status_code == 429
        assert exc_info.value.provider == "azure-openai"
        assert exc_info.value.is_retryable_status is True

    def test_transport_error_raises(self, azure_config):
        session = Mock()
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        client = AzureOpenAIClient(azure_config, session=session)

        with pytest.raises(ProviderError) as exc_info:
            client.chat(MESSAGES)
        assert exc_info.value.status_code is None

    def test_missing_content_raises(self, azure_config):
        session = Mock()
        session.post.return_value = make_response(body={"choices": []})
        client = AzureOpenAIClient(azure_config, session=session)

        with pytest.raises(ProviderError, match="no message content"):
            client.chat(MESSAGES)

    def test_invalid_envelope_raises(self, azure_config):
        session = Mock()
        session.post.return_value = make_response(text="<html>gateway error</html>")
        client = AzureOpenAIClient(azure_config, session=session)

        with pytest.raises(ProviderError, match="Invalid JSON envelope"):
            client.chat(MESSAGES)


class TestOpenAICompatibleClient:
    """Tests for OpenAICompatibleClient."""

    def test_request_shape(self, gateway_config):
        session = Mock()
        session.post.return_value = make_response(body=completion("hello"))
        client = OpenAICompatibleClient(gateway_config, session=session)

        client.chat(MESSAGES, temperature=0.3)

        url = session.post.call_args[0][0]
        kwargs = session.post.call_args[1]
        payload = json.loads(kwargs["data"])
        assert url == "https://gateway.example.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer gateway-key"
        assert payload["model"] == "google/gemini-3-flash-preview"
        assert "max_tokens" not in payload


class TestFactories:
    """Tests for provider client factories."""

    def test_create_provider_client(self, azure_config, gateway_config):
        assert isinstance(create_provider_client(azure_config, session=Mock()), AzureOpenAIClient)
        assert isinstance(create_provider_client(gateway_config, session=Mock()), OpenAICompatibleClient)

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown provider kind"):
            create_provider_client(ProviderConfig(name="x", kind="ollama"), session=Mock())

    def test_chain_shares_session(self, azure_config, gateway_config):
        session = Mock()
        chain = create_provider_chain([azure_config, gateway_config], session=session)

        assert [c.name for c in chain] == ["azure-openai", "ai-gateway"]
        assert all(c.session is session for c in chain)

    def test_base_client_is_abstract(self, azure_config):
        with pytest.raises(TypeError):
            ChatCompletionClient(azure_config, session=Mock())

    def test_incomplete_subclass_rejected(self, azure_config):
        class UrlOnlyClient(ChatCompletionClient):
            def build_url(self):
                return "https://example.org/chat"

        with pytest.raises(TypeError):
            UrlOnlyClient(azure_config, session=Mock())
