"""
Triage Contracts - The decision shape returned by AI providers.

A provider's message content must parse into a JSON object matching the
TriageDecision contract. Parsing and validation happen immediately after the
provider call; any failure is a ParseError and is treated by the gateway
exactly like a provider failure.

Uses dataclasses following the pattern established in core/types.py.
"""

from dataclasses import dataclass, field
from enum import Enum
import json
import re
from typing import Any, Dict, List, Optional

from ..core.exceptions import ParseError
from ..core.types import Priority


FALLBACK_PROVIDER = "fallback"

SAFE_DEFAULT_REASONING = "AI services unavailable — escalating for human review"

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class DecisionType(str, Enum):
    """Classifier verdict on a signal."""
    VALIDATE = "validate"
    DISMISS = "dismiss"
    ESCALATE = "escalate"


@dataclass
class DecisionFootnote:
    """
    Optional explanation attached to a decision.

    Attributes:
        summary: One-line summary of the assessment
        matched_indicators: Outbreak indicators found in the signal
        filtered_noise: Content the classifier discounted as noise
    """
    summary: str = ""
    matched_indicators: List[str] = field(default_factory=list)
    filtered_noise: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "matched_indicators": list(self.matched_indicators),
            "filtered_noise": list(self.filtered_noise),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecisionFootnote":
        return cls(
            summary=data.get("summary") or "",
            matched_indicators=list(data.get("matched_indicators") or []),
            filtered_noise=list(data.get("filtered_noise") or []),
        )


@dataclass
class TriageDecision:
    """
    Ephemeral triage verdict produced by the classifier gateway.

    Attributes:
        decision: validate, dismiss or escalate
        confidence: Classifier confidence (0-100)
        reasoning: Short explanation of the verdict
        priority_adjustment: Optional priority override
        footnote: Optional structured explanation
        provider: Name of the provider that produced the decision
    """
    decision: DecisionType
    confidence: float
    reasoning: str
    priority_adjustment: Optional[Priority] = None
    footnote: Optional[DecisionFootnote] = None
    provider: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        """True when no provider could classify and the safe default was used."""
        return self.provider == FALLBACK_PROVIDER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "priority_adjustment": self.priority_adjustment.value if self.priority_adjustment else None,
            "footnote": self.footnote.to_dict() if self.footnote else None,
            "provider": self.provider,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], provider: Optional[str] = None) -> "TriageDecision":
        """Create from an already-validated dictionary."""
        adjustment = data.get("priority_adjustment")
        footnote = data.get("footnote")
        return cls(
            decision=DecisionType(data["decision"]),
            confidence=float(data["confidence"]),
            reasoning=data["reasoning"],
            priority_adjustment=Priority(adjustment) if adjustment else None,
            footnote=DecisionFootnote.from_dict(footnote) if footnote else None,
            provider=provider,
        )


def safe_default_decision() -> TriageDecision:
    """Decision returned when every provider in the chain has failed."""
    return TriageDecision(
        decision=DecisionType.ESCALATE,
        confidence=0,
        reasoning=SAFE_DEFAULT_REASONING,
        priority_adjustment=None,
        provider=FALLBACK_PROVIDER,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_string_list(value: Any, path: str, errors: List[str]) -> None:
    if not isinstance(value, list):
        errors.append(f"{path} must be an array")
        return
    for i, item in enumerate(value):
        if not isinstance(item, str):
            errors.append(f"{path}[{i}] must be a string")


def validate_triage_decision_output(data: Any) -> List[str]:
    """
    Validate a dictionary against the TriageDecision contract.

    Returns a list of validation errors (empty if valid).
    """
    if not isinstance(data, dict):
        return ["Decision must be a JSON object"]

    errors = []
    allowed = {d.value for d in DecisionType}

    if "decision" not in data:
        errors.append("Missing required field: decision")
    elif data["decision"] not in allowed:
        errors.append(f"decision must be one of {sorted(allowed)}")

    if "confidence" not in data:
        errors.append("Missing required field: confidence")
    elif not _is_number(data["confidence"]):
        errors.append("confidence must be a number")
    elif data["confidence"] < 0 or data["confidence"] > 100:
        errors.append("confidence must be between 0 and 100")

    if "reasoning" not in data:
        errors.append("Missing required field: reasoning")
    elif not isinstance(data["reasoning"], str) or not data["reasoning"].strip():
        errors.append("reasoning must be a non-empty string")

    adjustment = data.get("priority_adjustment")
    if adjustment is not None and adjustment not in {p.value for p in Priority}:
        errors.append("priority_adjustment must be null or one of P1, P2, P3, P4")

    footnote = data.get("footnote")
    if footnote is not None:
        if not isinstance(footnote, dict):
            errors.append("footnote must be an object")
        else:
            if "summary" in footnote and not isinstance(footnote["summary"], str):
                errors.append("footnote.summary must be a string")
            for key in ("matched_indicators", "filtered_noise"):
                if key in footnote:
                    _validate_string_list(footnote[key], f"footnote.{key}", errors)

    return errors


def extract_json_object(content: Optional[str]) -> Any:
    """
    Parse provider message content as JSON, tolerating markdown code fences.

    Raises:
        ParseError: If the content is empty or not valid JSON
    """
    if content is None or not content.strip():
        raise ParseError("Provider returned empty content")

    text = content.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        match = _FENCE_PATTERN.search(text)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError:
                pass
        raise ParseError(f"Response is not valid JSON: {e}")


def parse_triage_decision(content: Optional[str], provider: Optional[str] = None) -> TriageDecision:
    """
    Parse and validate provider content into a TriageDecision.

    Raises:
        ParseError: On invalid JSON or contract violations
    """
    try:
        data = extract_json_object(content)
    except ParseError as e:
        e.provider = provider
        raise

    errors = validate_triage_decision_output(data)
    if errors:
        raise ParseError(
            f"Decision failed validation: {'; '.join(errors)}",
            validation_errors=errors,
            provider=provider,
        )
    return TriageDecision.from_dict(data, provider=provider)
