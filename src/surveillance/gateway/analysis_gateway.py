"""
Analysis Gateway - single-request ad hoc analysis.

Unlike batch triage, this path degrades only for conditions a caller cannot
fix: an exhausted rate budget, a missing primary, or a throttling/server
error (429, 5xx) from the primary move to the fallback provider. Any other
primary failure (4xx, transport error) is raised to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..contracts.triage_contracts import extract_json_object
from ..core.exceptions import ParseError, ProviderError
from ..prompts.analysis import ANALYSIS_CLASSIFY, ANALYSIS_TYPES, get_analysis_prompt
from ..providers.base import ChatCompletionClient, ChatResponse
from .rate_limiter import RateLimiter


logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """
    Result of one analysis request.

    Attributes:
        analysis: Parsed JSON, or {"raw_response": content} if not JSON
        model: Name of the provider that answered
        usage: Token usage block (if reported)
    """
    analysis: Dict[str, Any]
    model: str
    usage: Optional[Dict[str, Any]] = None
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = {"success": True, "analysis": self.analysis, "model": self.model}
        if self.usage is not None:
            result["usage"] = self.usage
        return result


def _parse_analysis(content: Optional[str]) -> Dict[str, Any]:
    try:
        parsed = extract_json_object(content)
    except ParseError:
        return {"raw_response": content}
    if not isinstance(parsed, dict):
        return {"raw_response": content}
    return parsed


class AnalysisGateway:
    """
    Primary provider with a narrow fallback rule.

    Example:
        >>> gateway = AnalysisGateway(primary=azure, fallback=gateway_client)
        >>> gateway.analyze("Cholera cases reported in ...", "classify").model
        'azure-openai'
    """

    def __init__(
        self,
        primary: Optional[ChatCompletionClient],
        fallback: Optional[ChatCompletionClient],
        rate_limiter: Optional[RateLimiter] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = 1000,
    ):
        self.primary = primary
        self.fallback = fallback
        self.rate_limiter = rate_limiter or RateLimiter()
        self.temperature = temperature
        self.max_tokens = max_tokens

    def analyze(self, text: str, analysis_type: str = ANALYSIS_CLASSIFY) -> AnalysisResult:
        """
        Analyse free text.

        Args:
            text: Text to analyse
            analysis_type: classify or validate

        Returns:
            AnalysisResult from whichever provider answered

        Raises:
            ValueError: If text is empty or the analysis type is unknown
            ProviderError: If the primary fails with a non-retryable error,
                or the fallback is missing or fails
        """
        if not text or not str(text).strip():
            raise ValueError("Text is required")
        if analysis_type not in ANALYSIS_TYPES:
            raise ValueError(
                f"Unknown analysis type: {analysis_type}. Supported: {', '.join(ANALYSIS_TYPES)}"
            )

        if not self.rate_limiter.try_acquire():
            logger.info("Rate limit exceeded, falling back")
            return self._use_fallback(text, analysis_type)

        if self.primary is None:
            logger.info("Primary provider not configured, falling back")
            return self._use_fallback(text, analysis_type)

        messages = [
            {"role": "system", "content": get_analysis_prompt(analysis_type)},
            {"role": "user", "content": text},
        ]
        try:
            response = self.primary.chat(
                messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except ProviderError as e:
            if e.is_retryable_status:
                logger.warning(f"{self.primary.name} returned {e.status_code}, falling back")
                return self._use_fallback(text, analysis_type)
            raise

        return self._to_result(response, self.primary.name, used_fallback=False)

    def _use_fallback(self, text: str, analysis_type: str) -> AnalysisResult:
        if self.fallback is None:
            raise ProviderError("No AI service configured")

        messages = [
            {"role": "system", "content": get_analysis_prompt(analysis_type, fallback=True)},
            {"role": "user", "content": text},
        ]
        response = self.fallback.chat(messages, temperature=self.temperature)
        return self._to_result(response, self.fallback.name, used_fallback=True)

    def _to_result(self, response: ChatResponse, model: str, used_fallback: bool) -> AnalysisResult:
        return AnalysisResult(
            analysis=_parse_analysis(response.content),
            model=model,
            usage=response.usage,
            used_fallback=used_fallback,
        )
