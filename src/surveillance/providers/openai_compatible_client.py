"""
OpenAI-compatible gateway client (secondary "general" provider).
"""

from typing import Any, Dict, List, Optional

from .base import ChatCompletionClient


class OpenAICompatibleClient(ChatCompletionClient):
    """
    Client for any OpenAI-compatible /v1/chat/completions endpoint.

    The configured endpoint is the full chat-completions URL; the model is
    sent in the body and auth uses a bearer token.
    """

    def build_url(self) -> str:
        return self.config.endpoint

    def build_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload = super().build_payload(messages, temperature=temperature, max_tokens=max_tokens)
        if self.config.model:
            payload["model"] = self.config.model
        return payload
