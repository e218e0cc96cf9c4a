"""
Chat-completion provider clients.
"""

from typing import List, Optional

import requests

from ..config.settings import ProviderConfig, PROVIDER_AZURE_OPENAI, PROVIDER_OPENAI_COMPATIBLE
from .base import ChatCompletionClient, ChatResponse
from .azure_openai_client import AzureOpenAIClient
from .openai_compatible_client import OpenAICompatibleClient


_CLIENTS = {
    PROVIDER_AZURE_OPENAI: AzureOpenAIClient,
    PROVIDER_OPENAI_COMPATIBLE: OpenAICompatibleClient,
}


def create_provider_client(
    config: ProviderConfig,
    session: Optional[requests.Session] = None,
) -> ChatCompletionClient:
    """
    Create the client for a provider configuration.

    Raises:
        ValueError: If the provider kind is not recognized
    """
    client_cls = _CLIENTS.get(config.kind)
    if client_cls is None:
        raise ValueError(
            f"Unknown provider kind: {config.kind}. Supported: {', '.join(sorted(_CLIENTS))}"
        )
    return client_cls(config, session=session)


def create_provider_chain(
    configs: List[ProviderConfig],
    session: Optional[requests.Session] = None,
) -> List[ChatCompletionClient]:
    """Create clients for an ordered provider chain, sharing one session."""
    shared = session or requests.Session()
    return [create_provider_client(c, session=shared) for c in configs]


__all__ = [
    "ChatCompletionClient",
    "ChatResponse",
    "AzureOpenAIClient",
    "OpenAICompatibleClient",
    "create_provider_client",
    "create_provider_chain",
]
