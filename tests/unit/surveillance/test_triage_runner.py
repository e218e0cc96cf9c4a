"""
Unit tests for the triage orchestrator.

Tests for:
- Batch size clamping
- Decision application (validate / dismiss / escalate)
- Fault isolation and fallback accounting
- Selection ordering and priority filter
"""

from unittest.mock import Mock

import pytest

from surveillance.contracts.triage_contracts import DecisionType, TriageDecision, safe_default_decision
from surveillance.core.exceptions import ProviderError
from surveillance.core.types import Priority, SignalStatus
from surveillance.gateway.classifier_gateway import ClassifierGateway
from surveillance.config.settings import SurveillanceConfig
from surveillance.runners.triage_runner import TriageOrchestrator, clamp_batch_size, triage_from_config


def make_decision(kind, reasoning="stub reasoning", confidence=85, priority_adjustment=None, provider="stub"):
    return TriageDecision(
        decision=DecisionType(kind),
        confidence=confidence,
        reasoning=reasoning,
        priority_adjustment=priority_adjustment,
        provider=provider,
    )


class DecisionsByPriority:
    """Gateway stub returning a fixed decision per signal priority."""

    def __init__(self, decisions):
        self.decisions = decisions
        self.calls = []

    def classify(self, signal):
        self.calls.append(signal.id)
        return self.decisions[signal.priority.value]


@pytest.fixture
def sleep():
    return Mock()


def orchestrator(store, gateway, clock, sleep, **kwargs):
    return TriageOrchestrator(store, gateway, sleep=sleep, clock=clock, **kwargs)


class TestClampBatchSize:
    """Tests for clamp_batch_size."""

    @pytest.mark.parametrize("value,expected", [
        (None, 50),
        ("20", 50),
        (True, 50),
        (float("nan"), 50),
        (0, 1),
        (-5, 1),
        (25, 25),
        (100, 100),
        (5000, 100),
        (12.7, 12),
    ])
    def test_triage_limits(self, value, expected):
        assert clamp_batch_size(value) == expected

    def test_custom_limits(self):
        assert clamp_batch_size(5000, default=500, maximum=1000) == 1000
        assert clamp_batch_size(None, default=500, maximum=1000) == 500


class TestTriageOrchestrator:
    """Tests for TriageOrchestrator."""

    def test_validate_dismiss_escalate_scenario(self, signal_store, make_signal, clock, sleep, now):
        p1 = make_signal(priority=Priority.P1)
        p2 = make_signal(priority=Priority.P2)
        p3 = make_signal(priority=Priority.P3, analyst_notes="ingested")
        for signal in (p1, p2, p3):
            signal_store.insert_signal(signal)
        gateway = DecisionsByPriority({
            "P1": make_decision("validate", reasoning="Confirmed by WHO AFRO"),
            "P2": make_decision("dismiss", reasoning="Historical article"),
            "P3": make_decision("escalate", reasoning="Ambiguous case counts"),
        })

        result = orchestrator(signal_store, gateway, clock, sleep).run_batch(batch_size=3)

        assert result.to_dict() == {"validated": 1, "dismissed": 1, "escalated": 1, "errors": 0}
        assert signal_store.get_signal(p2.id) is None

        validated = signal_store.get_signal(p1.id)
        assert validated.status == SignalStatus.VALIDATED
        assert validated.validated_at == now
        assert validated.priority == Priority.P1
        assert "Confirmed by WHO AFRO" in validated.analyst_notes
        assert validated.analyst_notes == "[AI TRIAGE] Confirmed by WHO AFRO (Confidence: 85%)"

        escalated = signal_store.get_signal(p3.id)
        assert escalated.status == SignalStatus.NEW
        assert escalated.analyst_notes == "[AI ESCALATED] Ambiguous case counts - Requires human review"

    def test_escalate_changes_only_notes(self, signal_store, make_signal, clock, sleep):
        signal = make_signal()
        signal_store.insert_signal(signal)
        gateway = Mock()
        gateway.classify.return_value = make_decision("escalate")

        orchestrator(signal_store, gateway, clock, sleep).run_batch()

        before = signal.to_dict()
        after = signal_store.get_signal(signal.id).to_dict()
        changed = {key for key in before if before[key] != after[key]}
        assert changed == {"analyst_notes"}

    def test_priority_override_applied(self, signal_store, make_signal, clock, sleep):
        signal = make_signal(priority=Priority.P3)
        signal_store.insert_signal(signal)
        gateway = Mock()
        gateway.classify.return_value = make_decision("validate", priority_adjustment=Priority.P1)

        orchestrator(signal_store, gateway, clock, sleep).run_batch()

        assert signal_store.get_signal(signal.id).priority == Priority.P1

    def test_soft_dismiss_mode(self, signal_store, make_signal, clock, sleep, now):
        signal = make_signal()
        signal_store.insert_signal(signal)
        gateway = Mock()
        gateway.classify.return_value = make_decision("dismiss", reasoning="Vaccine advert")

        result = orchestrator(signal_store, gateway, clock, sleep, dismiss_mode="soft").run_batch()

        stored = signal_store.get_signal(signal.id)
        assert result.dismissed == 1
        assert stored.status == SignalStatus.DISMISSED
        assert stored.validated_at == now
        assert stored.analyst_notes.startswith("[AI DISMISSED] Vaccine advert")

    def test_dismissed_id_reprocessed_is_noop(self, signal_store, make_signal, clock, sleep):
        signal = make_signal()
        signal_store.insert_signal(signal)
        gateway = Mock()
        gateway.classify.return_value = make_decision("dismiss")
        runner = orchestrator(signal_store, gateway, clock, sleep)
        runner.run_batch()

        outcome = runner.apply_decision(signal, make_decision("dismiss"))

        assert outcome.outcome == "dismissed"
        assert signal_store.get_signal(signal.id) is None

    def test_primary_fails_secondary_partial(self, signal_store, make_signal, clock, sleep):
        signals = [make_signal() for _ in range(5)]
        for signal in signals:
            signal_store.insert_signal(signal)

        primary = Mock()
        primary.name = "primary"
        primary.classify.side_effect = ProviderError("primary down", status_code=503)
        secondary = Mock()
        secondary.name = "secondary"
        secondary.classify.side_effect = [
            make_decision("validate", provider="secondary"),
            ProviderError("secondary down"),
            make_decision("escalate", provider="secondary"),
            make_decision("dismiss", provider="secondary"),
            ProviderError("secondary down"),
        ]
        gateway = ClassifierGateway([primary, secondary])

        result = orchestrator(signal_store, gateway, clock, sleep).run_batch(batch_size=5)

        assert result.validated + result.dismissed + result.escalated == 3
        assert result.errors == 2
        assert result.processed == 5
        assert primary.classify.call_count == 5

    def test_fallback_decision_still_notes_signal(self, signal_store, make_signal, clock, sleep):
        signal = make_signal()
        signal_store.insert_signal(signal)
        gateway = Mock()
        gateway.classify.return_value = safe_default_decision()

        result = orchestrator(signal_store, gateway, clock, sleep).run_batch()

        stored = signal_store.get_signal(signal.id)
        assert result.errors == 1
        assert stored.status == SignalStatus.NEW
        assert "AI services unavailable" in stored.analyst_notes

    def test_per_signal_failure_isolated(self, make_signal, clock, sleep):
        signals = [make_signal(priority=Priority.P1), make_signal(priority=Priority.P2)]
        store = Mock()
        store.fetch_untriaged.return_value = signals
        store.update_signal.side_effect = [RuntimeError("database unavailable"), True]
        gateway = Mock()
        gateway.classify.return_value = make_decision("validate")

        result = orchestrator(store, gateway, clock, sleep).run_batch()

        assert result.to_dict() == {"validated": 1, "dismissed": 0, "escalated": 0, "errors": 1}
        assert result.outcomes[0].error == "database unavailable"

    def test_throttle_before_each_classification(self, signal_store, make_signal, clock, sleep):
        for _ in range(3):
            signal_store.insert_signal(make_signal())
        gateway = Mock()
        gateway.classify.return_value = make_decision("escalate")

        orchestrator(signal_store, gateway, clock, sleep, throttle_seconds=0.2).run_batch()

        assert sleep.call_count == 3
        sleep.assert_called_with(0.2)

    def test_clamps_to_100(self, make_signal, clock, sleep):
        store = Mock()
        store.fetch_untriaged.return_value = []

        result = orchestrator(store, Mock(), clock, sleep).run_batch(batch_size=5000)

        store.fetch_untriaged.assert_called_once_with(100, None)
        assert result.processed == 0

    def test_priority_filter(self, signal_store, make_signal, clock, sleep):
        p1 = make_signal(priority=Priority.P1)
        p4 = make_signal(priority=Priority.P4)
        signal_store.insert_signal(p1)
        signal_store.insert_signal(p4)
        gateway = DecisionsByPriority({"P1": make_decision("escalate"), "P4": make_decision("escalate")})

        orchestrator(signal_store, gateway, clock, sleep).run_batch(priorities=["p4"])

        assert gateway.calls == [p4.id]

    def test_unknown_priority_filter_selects_nothing(self, make_signal, clock, sleep):
        store = Mock()

        result = orchestrator(store, Mock(), clock, sleep).run_batch(priorities=["urgent"])

        store.fetch_untriaged.assert_not_called()
        assert result.processed == 0

    def test_empty_priority_filter_selects_all(self, clock, sleep):
        store = Mock()
        store.fetch_untriaged.return_value = []

        orchestrator(store, Mock(), clock, sleep).run_batch(priorities=[])

        store.fetch_untriaged.assert_called_once_with(50, None)

    def test_invalid_dismiss_mode(self, signal_store, clock, sleep):
        with pytest.raises(ValueError):
            orchestrator(signal_store, Mock(), clock, sleep, dismiss_mode="archive")


class TestTriageFromConfig:
    """Tests for triage_from_config."""

    def test_configured_batch_sizes(self, tmp_path, clock, sleep):
        path = tmp_path / "surveillance.yaml"
        path.write_text("triage:\n  default_batch_size: 2\n  max_batch_size: 3\n", encoding="utf-8")
        store = Mock()
        store.fetch_untriaged.return_value = []
        runner = triage_from_config(SurveillanceConfig(path, env={}), store, Mock(), sleep=sleep, clock=clock)

        runner.run_batch()
        runner.run_batch(batch_size=10)

        assert [c.args for c in store.fetch_untriaged.call_args_list] == [(2, None), (3, None)]
