"""
Core subpackage for the signal triage pipeline.

Contains signal types, exceptions, logging and time utilities.
"""

from .types import (
    Signal,
    SignalStatus,
    Priority,
    DiseaseCategory,
    SourceTier,
    Reviewer,
    ARCHIVE_COLUMNS,
    ARCHIVE_MUTABLE_COLUMNS,
    SIGNAL_COLUMNS,
)
from .exceptions import (
    SurveillanceError,
    ProviderError,
    ParseError,
    ConfigError,
    StoreError,
    LifecycleError,
)

__all__ = [
    # Types
    "Signal",
    "SignalStatus",
    "Priority",
    "DiseaseCategory",
    "SourceTier",
    "Reviewer",
    "ARCHIVE_COLUMNS",
    "ARCHIVE_MUTABLE_COLUMNS",
    "SIGNAL_COLUMNS",
    # Exceptions
    "SurveillanceError",
    "ProviderError",
    "ParseError",
    "ConfigError",
    "StoreError",
    "LifecycleError",
]
