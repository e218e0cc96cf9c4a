"""
Prompt templates for provider calls.
"""

from .triage import TRIAGE_SYSTEM_PROMPT, build_signal_context
from .analysis import (
    ANALYSIS_CLASSIFY,
    ANALYSIS_VALIDATE,
    ANALYSIS_TYPES,
    get_analysis_prompt,
)

__all__ = [
    "TRIAGE_SYSTEM_PROMPT",
    "build_signal_context",
    "ANALYSIS_CLASSIFY",
    "ANALYSIS_VALIDATE",
    "ANALYSIS_TYPES",
    "get_analysis_prompt",
]
