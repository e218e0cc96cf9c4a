"""
Azure OpenAI provider client (primary "specialist" provider).
"""

from typing import Dict

from .base import ChatCompletionClient


DEFAULT_API_VERSION = "2024-02-15-preview"


class AzureOpenAIClient(ChatCompletionClient):
    """
    Client for an Azure OpenAI chat-completions deployment.

    URL: {endpoint}/openai/deployments/{deployment}/chat/completions?api-version=...
    Auth: ``api-key`` header.
    """

    def build_url(self) -> str:
        endpoint = self.config.endpoint.rstrip("/")
        api_version = self.config.api_version or DEFAULT_API_VERSION
        return (
            f"{endpoint}/openai/deployments/{self.config.deployment}"
            f"/chat/completions?api-version={api_version}"
        )

    def build_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "api-key": self.config.api_key,
        }
