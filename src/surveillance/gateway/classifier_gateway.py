"""
Classifier Gateway - triage decisions from an ordered provider chain.

The gateway walks its providers in order until one returns a decision that
passes contract validation. Transport failures, non-2xx statuses, invalid
JSON and contract violations all move on to the next provider without
retrying the same one. When the chain is exhausted the safe default
(escalate, confidence 0) is returned, so every signal reaches a
human-reviewable outcome.

A rate limiter guards the providers flagged ``rate_limited`` (the primary);
an exhausted budget skips straight to the next provider. Fallback providers
are never throttled, even when the primary is absent from the chain.
"""

import logging
from typing import List, Optional

from ..contracts.triage_contracts import TriageDecision, parse_triage_decision, safe_default_decision
from ..core.exceptions import ParseError, ProviderError
from ..core.logging import CorrelationContext, log_with_context
from ..core.types import Signal
from ..prompts.triage import TRIAGE_SYSTEM_PROMPT, build_signal_context
from ..providers.base import ChatCompletionClient
from .rate_limiter import RateLimiter


logger = logging.getLogger(__name__)


class TriageProvider:
    """
    Adapter exposing one chat-completion client as a triage classifier.

    ``classify`` fails with ProviderError or ParseError; it never returns a
    partially valid decision. ``rate_limited`` marks the primary provider,
    whose calls count against the gateway budget.
    """

    def __init__(
        self,
        client: ChatCompletionClient,
        system_prompt: str = TRIAGE_SYSTEM_PROMPT,
        temperature: float = 0.2,
        max_tokens: Optional[int] = 300,
        rate_limited: bool = False,
    ):
        self.client = client
        self.name = client.name
        self.rate_limited = rate_limited
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens

    def classify(self, context: str) -> TriageDecision:
        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": context},
        ]
        response = self.client.chat(
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return parse_triage_decision(response.content, provider=self.name)


class ClassifierGateway:
    """
    Ordered provider chain with a safe default.

    Example:
        >>> gateway = ClassifierGateway([primary, secondary], RateLimiter())
        >>> decision = gateway.classify(signal)
        >>> decision.decision
        <DecisionType.VALIDATE: 'validate'>
    """

    def __init__(
        self,
        providers: List[TriageProvider],
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Initialize the gateway.

        Args:
            providers: Providers in priority order (primary first)
            rate_limiter: Budget for rate-limited providers (a default
                100-per-60s limiter is created if None)
        """
        self.providers = list(providers)
        self.rate_limiter = rate_limiter or RateLimiter()

    def classify(self, signal: Signal) -> TriageDecision:
        """
        Classify one signal. Never raises.

        Args:
            signal: The signal to classify

        Returns:
            The first valid provider decision, or the safe default
        """
        with CorrelationContext(signal_id=signal.id):
            try:
                context = build_signal_context(signal)
            except Exception as e:
                log_with_context(logger, logging.ERROR, f"Could not build signal context: {e}")
                return safe_default_decision()
            return self.classify_context(context)

    def classify_context(self, context: str) -> TriageDecision:
        """Classify a pre-rendered signal context. Never raises."""
        for provider in self.providers:
            if provider.rate_limited and not self.rate_limiter.try_acquire():
                log_with_context(
                    logger, logging.INFO,
                    f"Rate limit exhausted, skipping {provider.name}",
                    provider=provider.name,
                )
                continue

            try:
                decision = provider.classify(context)
            except (ProviderError, ParseError) as e:
                log_with_context(
                    logger, logging.WARNING,
                    f"Provider {provider.name} failed, falling back: {e}",
                    provider=provider.name,
                )
                continue
            except Exception as e:
                log_with_context(
                    logger, logging.WARNING,
                    f"Unexpected error from {provider.name}, falling back: {e}",
                    provider=provider.name,
                )
                continue

            log_with_context(
                logger, logging.INFO,
                f"{decision.decision.value} ({decision.confidence:g}%)",
                provider=provider.name,
                decision=decision.decision.value,
            )
            return decision

        log_with_context(
            logger, logging.WARNING,
            "All providers failed; escalating for human review",
            provider="fallback",
        )
        return safe_default_decision()
