"""
Entry points: request handlers, service wiring and the FastAPI server.
"""

from .handlers import (
    handle_analyze_signal,
    handle_auto_triage,
    handle_daily_cleanup,
    handle_health,
    handle_sync_archive,
)
from .services import PipelineServices

__all__ = [
    "PipelineServices",
    "handle_auto_triage",
    "handle_sync_archive",
    "handle_daily_cleanup",
    "handle_analyze_signal",
    "handle_health",
]
