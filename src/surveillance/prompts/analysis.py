"""
Analysis prompts for the single-request analysis entry point.

Each analysis type has a detailed prompt for the primary provider and a
compact one for the fallback provider.
"""

from typing import Dict


ANALYSIS_CLASSIFY = "classify"
ANALYSIS_VALIDATE = "validate"

ANALYSIS_TYPES = (ANALYSIS_CLASSIFY, ANALYSIS_VALIDATE)


_PRIMARY_PROMPTS: Dict[str, str] = {
    ANALYSIS_CLASSIFY: """You are an expert epidemiologist and disease surveillance analyst. Analyse the following text from Africa and extract:
1. Disease name (if identifiable)
2. Disease category (vhf, respiratory, enteric, vector_borne, zoonotic, vaccine_preventable, environmental, unknown)
3. Priority level (P1 critical, P2 high, P3 medium, P4 low)
4. Confidence score (0-100)
5. Key symptoms mentioned
6. Location details if mentioned
7. Whether this matches seasonal patterns

Respond in JSON format only.""",
    ANALYSIS_VALIDATE: """You are an expert at validating disease outbreak reports. Assess the credibility and severity of this report:
1. Plausibility score (0-100)
2. Red flags or inconsistencies
3. Suggested cross-references
4. Recommended priority adjustment

Respond in JSON format only.""",
}

_FALLBACK_PROMPTS: Dict[str, str] = {
    ANALYSIS_CLASSIFY: (
        "You are an expert epidemiologist. Analyse this text from Africa and return JSON with: "
        "disease_name, category (vhf/respiratory/enteric/vector_borne/zoonotic/vaccine_preventable/"
        "environmental/unknown), priority (P1/P2/P3/P4), confidence (0-100), symptoms[], location."
    ),
    ANALYSIS_VALIDATE: (
        "Validate this disease report. Return JSON with: plausibility (0-100), red_flags[], "
        "suggested_priority."
    ),
}


def get_analysis_prompt(analysis_type: str, fallback: bool = False) -> str:
    """
    Return the system prompt for an analysis type.

    Raises:
        ValueError: If the analysis type is unknown
    """
    prompts = _FALLBACK_PROMPTS if fallback else _PRIMARY_PROMPTS
    if analysis_type not in prompts:
        raise ValueError(
            f"Unknown analysis type: {analysis_type}. Supported: {', '.join(ANALYSIS_TYPES)}"
        )
    return prompts[analysis_type]
