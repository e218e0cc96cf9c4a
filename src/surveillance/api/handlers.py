"""
Entry-point handlers shared by the HTTP server and the CLI.

Each handler takes the process's PipelineServices and a request body (any
value; non-dict bodies fall back to defaults) and returns
``(status_code, response_body)``. Per-signal failures are reported through
the result counts; only configuration problems and failures before the
batch starts produce an error status. Handlers that write to the signal
store run one at a time per process.
"""

import functools
import logging
from typing import Any, Callable, Dict, Tuple

from ..core.exceptions import ConfigError, ProviderError, StoreError
from ..prompts.analysis import ANALYSIS_CLASSIFY
from ..runners.archive_sync import archive_from_config
from ..runners.retention import RetentionJanitor
from ..runners.triage_runner import triage_from_config
from .services import PipelineServices


logger = logging.getLogger(__name__)

Response = Tuple[int, Dict[str, Any]]


def _as_dict(body: Any) -> Dict[str, Any]:
    return body if isinstance(body, dict) else {}


def _error(status: int, error: str, details: Any = None) -> Response:
    payload: Dict[str, Any] = {"error": error}
    if details is not None:
        payload["details"] = details
    return status, payload


def _exclusive(handler: Callable[..., Response]) -> Callable[..., Response]:
    @functools.wraps(handler)
    def wrapper(services: PipelineServices, body: Any = None) -> Response:
        with services.exclusive():
            return handler(services, body)
    return wrapper


@_exclusive
def handle_auto_triage(services: PipelineServices, body: Any = None) -> Response:
    """
    Run one triage batch.

    Body: ``{"batchSize"?: number, "priority"?: [str]}``
    """
    body = _as_dict(body)
    priorities = body.get("priority") if isinstance(body.get("priority"), list) else None

    try:
        orchestrator = triage_from_config(
            services.config,
            store=services.signal_store(),
            gateway=services.classifier_gateway(),
            sleep=services.sleep,
            clock=services.clock,
        )
    except ConfigError as e:
        logger.error(f"[auto-triage] Configuration error: {e}")
        return _error(500, str(e))
    except StoreError as e:
        logger.error(f"[auto-triage] Signal store unavailable: {e}")
        return _error(500, "Signal store unavailable", str(e))

    try:
        result = orchestrator.run_batch(body.get("batchSize"), priorities)
    except Exception as e:
        logger.error(f"[auto-triage] Failed to fetch signals: {e}")
        return _error(500, "Failed to fetch signals", str(e))

    if result.processed == 0:
        message = "No pending signals to process"
    else:
        message = f"Processed {result.processed} signals"
    return 200, {"message": message, "results": result.to_dict()}


@_exclusive
def handle_sync_archive(services: PipelineServices, body: Any = None) -> Response:
    """
    Run one archive sync.

    Body: ``{"batchSize"?: number, "archiveAgeDays"?: number, "deleteAfterSync"?: bool}``
    """
    body = _as_dict(body)

    try:
        archive_store = services.archive_store()
        store = services.signal_store()
    except ConfigError as e:
        logger.error(f"[sync-archive] Configuration error: {e}")
        return _error(400, str(e))
    except StoreError as e:
        logger.error(f"[sync-archive] Signal store unavailable: {e}")
        return _error(500, "Signal store unavailable", str(e))

    synchronizer = archive_from_config(services.config, store, archive_store, clock=services.clock)
    try:
        result = synchronizer.archive(
            batch_size=body.get("batchSize"),
            archive_age_days=body.get("archiveAgeDays"),
            delete_after_sync=body.get("deleteAfterSync"),
        )
    except Exception as e:
        logger.error(f"[sync-archive] Unexpected error: {e}")
        return _error(500, "Archive sync failed", str(e))

    if result.synced == 0 and result.errors == 0 and result.skipped == 0:
        message = "No signals to archive"
    else:
        message = f"Synced {result.synced} signals to archive store"
    return 200, {"message": message, "results": result.to_dict()}


@_exclusive
def handle_daily_cleanup(services: PipelineServices, body: Any = None) -> Response:
    """Run the retention cleanup. The body is ignored."""
    try:
        janitor = RetentionJanitor(services.signal_store(), clock=services.clock)
        result = janitor.cleanup()
    except ConfigError as e:
        logger.error(f"[daily-cleanup] Configuration error: {e}")
        return _error(500, str(e))
    except Exception as e:
        logger.error(f"[daily-cleanup] Fatal error: {e}")
        return _error(500, "Cleanup failed", str(e))
    return 200, result.to_dict()


def handle_analyze_signal(services: PipelineServices, body: Any = None) -> Response:
    """
    Ad hoc analysis of free text.

    Body: ``{"text": str, "analysisType"?: "classify" | "validate"}``
    """
    body = _as_dict(body)
    text = body.get("text")
    if not isinstance(text, str) or not text.strip():
        return _error(400, "Text is required")
    analysis_type = body.get("analysisType") or ANALYSIS_CLASSIFY

    gateway = services.analysis_gateway()
    try:
        result = gateway.analyze(text, analysis_type)
    except ValueError as e:
        return _error(400, str(e))
    except ProviderError as e:
        logger.error(f"[analyze-signal] AI analysis failed: {e}")
        return _error(500, "AI analysis failed", str(e))
    return 200, result.to_dict()


def handle_health(services: PipelineServices) -> Response:
    providers = [p.name for p in services.config.get_provider_configs()]
    return 200, {"status": "ok", "providers": providers}
