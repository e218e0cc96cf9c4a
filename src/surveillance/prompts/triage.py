"""
Triage prompt - system prompt and signal context for batch triage.

The system prompt casts the model as a surveillance analyst and pins the
response to the TriageDecision JSON contract.
"""

from ..core.types import Signal


TRIAGE_SYSTEM_PROMPT = """You are an expert disease surveillance analyst working on outbreak detection for the WHO African region (AFRO).

Assess the outbreak signal below and choose exactly one decision.

validate: a credible threat that needs attention.
  - Official or reputable source (WHO, Africa CDC, Ministry of Health, established media)
  - Confirmed or suspected cases or deaths
  - A named disease or a clear description of symptoms
  - A specific location (country, region, city)
  - Recent events (within the last 30 days)
  - P1 or P2 signals that carry outbreak indicators

dismiss: noise that needs no action.
  - Political content with no health relevance
  - Old news (over 30 days) with no ongoing outbreak
  - No disease or health emergency mentioned
  - Funding or budget announcements without outbreak context
  - Opinion pieces, editorials, social media chatter
  - General health advice
  - A duplicate of an event already reported

escalate: a human analyst must review.
  - Unknown disease with severe symptoms
  - Risk of cross-border spread
  - Conflicting or ambiguous information
  - High priority but low confidence
  - Possible high-consequence pathogen (VHF, novel respiratory)
  - Mass gathering or displacement context

Return ONLY a JSON object, with no markdown and no extra text:
{
  "decision": "validate" | "dismiss" | "escalate",
  "confidence": 0-100,
  "reasoning": "one or two sentences",
  "priority_adjustment": null | "P1" | "P2" | "P3" | "P4",
  "footnote": {
    "summary": "one line",
    "matched_indicators": ["..."],
    "filtered_noise": ["..."]
  }
}
The footnote is optional."""


def _enum_value(value) -> str:
    if value is None:
        return "Unknown"
    return getattr(value, "value", value)


def build_signal_context(signal: Signal) -> str:
    """
    Render the user message describing one signal.

    Args:
        signal: The signal to evaluate

    Returns:
        Context block with metadata, source tier, country, current priority
        and the original (plus translated, when present) text
    """
    lines = [
        "SIGNAL TO EVALUATE:",
        f"Source: {signal.source_name} (Tier: {_enum_value(signal.source_tier)})",
        f"Country: {signal.location_country}",
        f"Disease: {signal.disease_name or 'Unknown'}",
        f"Category: {_enum_value(signal.disease_category)}",
        f"Current Priority: {_enum_value(signal.priority)}",
        f"Confidence Score: {signal.confidence_score:g}%",
        f"Cross-Border Risk: {'Yes' if signal.cross_border_risk else 'No'}",
    ]

    if signal.reported_cases is not None:
        lines.append(f"Reported Cases: {signal.reported_cases}")
    if signal.reported_deaths is not None:
        lines.append(f"Reported Deaths: {signal.reported_deaths}")
    if signal.original_language:
        lines.append(f"Original Language: {signal.original_language}")

    lines.extend(["", "ORIGINAL TEXT:", signal.original_text])

    if signal.translated_text:
        lines.extend(["", "TRANSLATED TEXT:", signal.translated_text])

    return "\n".join(lines) + "\n"
