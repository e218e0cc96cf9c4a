"""
Base chat-completion client.

Thin HTTP client for chat-completion style endpoints. Subclasses supply the
URL, auth headers and payload shape; transport, status handling and
response parsing are shared.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ..config.settings import ProviderConfig
from ..core.exceptions import ProviderError


logger = logging.getLogger(__name__)


@dataclass
class ChatResponse:
    """
    Response from a chat-completion endpoint.

    Attributes:
        content: The first choice's message content
        raw_response: Full response JSON
        model: Model that generated the response (if reported)
        usage: Token usage block (if reported)
        status_code: HTTP status code
        duration_ms: Round-trip time
    """
    content: Optional[str]
    raw_response: Dict[str, Any] = field(default_factory=dict)
    model: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
    status_code: int = 200
    duration_ms: Optional[int] = None


class ChatCompletionClient(ABC):
    """
    HTTP client for one chat-completion provider.

    Example:
        >>> client = AzureOpenAIClient(provider_config)
        >>> response = client.chat([
        ...     {"role": "system", "content": "You are helpful."},
        ...     {"role": "user", "content": "What is 2+2?"},
        ... ])
        >>> print(response.content)
    """

    def __init__(self, config: ProviderConfig, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            config: Provider configuration
            session: Optional requests session (a new one is created if None)
        """
        self.config = config
        self.name = config.name
        self.timeout = config.timeout_seconds
        self.session = session or requests.Session()

    @abstractmethod
    def build_url(self) -> str:
        """Return the chat-completion endpoint URL."""
        pass

    @abstractmethod
    def build_headers(self) -> Dict[str, str]:
        """Return request headers including auth."""
        pass

    def build_payload(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatResponse:
        """
        Send a chat-completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature
            max_tokens: Maximum tokens in the response

        Returns:
            ChatResponse with the first choice's content

        Raises:
            ProviderError: On transport failure, non-2xx status, or a
                response body without message content
        """
        url = self.build_url()
        payload = self.build_payload(messages, temperature=temperature, max_tokens=max_tokens)

        start_time = time.time()
        try:
            response = self.session.post(
                url,
                headers=self.build_headers(),
                data=json.dumps(payload),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to reach provider {self.name}: {e}")
            raise ProviderError(f"Failed to reach {self.name}: {e}", provider=self.name)

        duration_ms = int((time.time() - start_time) * 1000)

        if not 200 <= response.status_code < 300:
            body = response.text
            logger.warning(f"Provider {self.name} returned {response.status_code}: {body[:500]}")
            raise ProviderError(
                f"{self.name} API error: {response.status_code} - {body}",
                provider=self.name,
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Invalid JSON envelope from {self.name}: {e}",
                provider=self.name,
                status_code=response.status_code,
            )

        return self._parse_response(result, response.status_code, duration_ms)

    def _parse_response(self, result: Dict[str, Any], status_code: int, duration_ms: int) -> ChatResponse:
        """Parse an OpenAI-style response envelope."""
        choices = result.get("choices") or []
        content = None
        if choices:
            message = choices[0].get("message") or {}
            content = message.get("content")

        if not content:
            raise ProviderError(
                f"{self.name} returned no message content",
                provider=self.name,
                status_code=status_code,
            )

        return ChatResponse(
            content=content,
            raw_response=result,
            model=result.get("model"),
            usage=result.get("usage"),
            status_code=status_code,
            duration_ms=duration_ms,
        )

    def close(self) -> None:
        """Close the session."""
        if self.session:
            self.session.close()
