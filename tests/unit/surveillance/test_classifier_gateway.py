"""
Unit tests for the classifier gateway.

Tests for:
- Provider chain ordering and fallback
- Rate limiter skipping the primary
- Safe default on total outage
- TriageProvider prompt/response handling
"""

from unittest.mock import Mock

import pytest

from surveillance.contracts.triage_contracts import DecisionType, TriageDecision
from surveillance.core.exceptions import ParseError, ProviderError
from surveillance.gateway.classifier_gateway import ClassifierGateway, TriageProvider
from surveillance.gateway.rate_limiter import RateLimiter
from surveillance.prompts.triage import TRIAGE_SYSTEM_PROMPT
from surveillance.providers.base import ChatResponse


def decision(kind="validate", provider="primary"):
    return TriageDecision(
        decision=DecisionType(kind),
        confidence=80,
        reasoning=f"{provider} says {kind}",
        provider=provider,
    )


def stub_provider(name, result=None, error=None, rate_limited=False):
    provider = Mock()
    provider.name = name
    provider.rate_limited = rate_limited
    if error is not None:
        provider.classify.side_effect = error
    else:
        provider.classify.return_value = result
    return provider


class TestClassifierGateway:
    """Tests for ClassifierGateway."""

    def test_primary_success(self, make_signal):
        primary = stub_provider("primary", decision("validate", "primary"))
        secondary = stub_provider("secondary", decision("dismiss", "secondary"))
        gateway = ClassifierGateway([primary, secondary])

        result = gateway.classify(make_signal())

        assert result.decision == DecisionType.VALIDATE
        assert result.provider == "primary"
        secondary.classify.assert_not_called()

    @pytest.mark.parametrize("error", [
        ProviderError("boom", provider="primary", status_code=500),
        ProviderError("bad request", provider="primary", status_code=400),
        ParseError("not json"),
        RuntimeError("unexpected"),
    ])
    def test_any_primary_failure_falls_back(self, make_signal, error):
        primary = stub_provider("primary", error=error)
        secondary = stub_provider("secondary", decision("dismiss", "secondary"))
        gateway = ClassifierGateway([primary, secondary])

        result = gateway.classify(make_signal())

        assert result.decision == DecisionType.DISMISS
        assert result.provider == "secondary"
        assert primary.classify.call_count == 1

    def test_all_providers_fail_returns_safe_default(self, make_signal):
        primary = stub_provider("primary", error=ProviderError("down"))
        secondary = stub_provider("secondary", error=ParseError("garbage"))
        gateway = ClassifierGateway([primary, secondary])

        result = gateway.classify(make_signal())

        assert result.decision == DecisionType.ESCALATE
        assert result.confidence == 0
        assert result.priority_adjustment is None
        assert result.is_fallback is True

    def test_empty_chain_returns_safe_default(self, make_signal):
        assert ClassifierGateway([]).classify(make_signal()).is_fallback is True

    def test_rate_limit_skips_primary(self, make_signal):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=lambda: 0.0)
        primary = stub_provider("primary", decision("validate", "primary"), rate_limited=True)
        secondary = stub_provider("secondary", decision("escalate", "secondary"))
        gateway = ClassifierGateway([primary, secondary], rate_limiter=limiter)

        first = gateway.classify(make_signal())
        second = gateway.classify(make_signal())

        assert first.provider == "primary"
        assert second.provider == "secondary"
        assert primary.classify.call_count == 1

    def test_rate_limit_does_not_guard_secondary(self, make_signal):
        limiter = RateLimiter(max_requests=0, window_seconds=60, clock=lambda: 0.0)
        primary = stub_provider("primary", decision(), rate_limited=True)
        secondary = stub_provider("secondary", decision("validate", "secondary"))
        gateway = ClassifierGateway([primary, secondary], rate_limiter=limiter)

        for _ in range(3):
            assert gateway.classify(make_signal()).provider == "secondary"
        primary.classify.assert_not_called()

    def test_fallback_only_chain_is_not_throttled(self, make_signal):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=lambda: 0.0)
        secondary = stub_provider("ai-gateway", decision("validate", "ai-gateway"))
        gateway = ClassifierGateway([secondary], rate_limiter=limiter)

        providers = [gateway.classify(make_signal()).provider for _ in range(3)]

        assert providers == ["ai-gateway"] * 3
        assert limiter.requests_in_window == 0

    def test_context_passed_to_provider(self, make_signal):
        primary = stub_provider("primary", decision())
        gateway = ClassifierGateway([primary])
        signal = make_signal(original_text="Ebola suspected in Kasese district", location_country="Uganda")

        gateway.classify(signal)

        context = primary.classify.call_args[0][0]
        assert "Ebola suspected in Kasese district" in context
        assert "Country: Uganda" in context
        assert "Current Priority: P3" in context


class TestTriageProvider:
    """Tests for TriageProvider."""

    def test_sends_system_prompt_and_parses(self):
        client = Mock()
        client.name = "azure-openai"
        client.chat.return_value = ChatResponse(
            content='{"decision": "escalate", "confidence": 40, "reasoning": "Unclear source"}'
        )
        provider = TriageProvider(client)

        result = provider.classify("SIGNAL TO EVALUATE: ...")

        messages = client.chat.call_args[0][0]
        assert messages[0] == {"role": "system", "content": TRIAGE_SYSTEM_PROMPT}
        assert messages[1]["content"] == "SIGNAL TO EVALUATE: ..."
        assert client.chat.call_args[1] == {"temperature": 0.2, "max_tokens": 300}
        assert result.decision == DecisionType.ESCALATE
        assert result.provider == "azure-openai"

    def test_invalid_decision_raises_parse_error(self):
        client = Mock()
        client.name = "azure-openai"
        client.chat.return_value = ChatResponse(content='{"decision": "validate"}')

        with pytest.raises(ParseError):
            TriageProvider(client).classify("context")
