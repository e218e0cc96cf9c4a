"""
Configuration management for the triage pipeline.
"""

from .settings import (
    SurveillanceConfig,
    ProviderConfig,
    SqlServerConnectionConfig,
    PROVIDER_AZURE_OPENAI,
    PROVIDER_OPENAI_COMPATIBLE,
    DISMISS_MODE_DELETE,
    DISMISS_MODE_SOFT,
)

__all__ = [
    "SurveillanceConfig",
    "ProviderConfig",
    "SqlServerConnectionConfig",
    "PROVIDER_AZURE_OPENAI",
    "PROVIDER_OPENAI_COMPATIBLE",
    "DISMISS_MODE_DELETE",
    "DISMISS_MODE_SOFT",
]
