"""
Command-line interface for the signal triage pipeline.

Usage:
    python -m surveillance triage --batch-size 25 --priority P1 --priority P2
    python -m surveillance archive --age-days 7 --delete-after-sync
    python -m surveillance cleanup --dry-run
    python -m surveillance dedupe
    python -m surveillance analyze "Suspected cholera outbreak ..." --type validate
    python -m surveillance stats
    python -m surveillance serve --port 8000
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..api.handlers import (
    handle_analyze_signal,
    handle_auto_triage,
    handle_daily_cleanup,
    handle_sync_archive,
)
from ..api.services import PipelineServices
from ..config.settings import SurveillanceConfig
from ..core.exceptions import SurveillanceError
from ..core.logging import configure_logging
from ..runners.dedupe import DEFAULT_DELETE_BATCH_SIZE, DuplicatePurger
from ..runners.retention import RetentionJanitor


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="surveillance",
        description="Signal triage and lifecycle pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to YAML config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--structured-logs", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    triage = subparsers.add_parser("triage", help="Run one auto-triage batch")
    triage.add_argument("--batch-size", type=int, default=None, help="Signals per batch (1-100, default: 50)")
    triage.add_argument(
        "--priority",
        action="append",
        default=None,
        help="Only triage this priority (repeatable, e.g. --priority P1 --priority P2)",
    )

    archive = subparsers.add_parser("archive", help="Sync aged, resolved signals to the archive store")
    archive.add_argument("--batch-size", type=int, default=None, help="Signals per run (1-1000, default: 500)")
    archive.add_argument("--age-days", type=float, default=None, help="Minimum validated_at age (default: 7)")
    archive.add_argument(
        "--delete-after-sync",
        action="store_true",
        default=None,
        help="Delete synced signals from the primary store (default: archive.delete_after_sync)",
    )

    cleanup = subparsers.add_parser("cleanup", help="Delete stale non-validated signals")
    cleanup.add_argument("--dry-run", action="store_true", help="Report what would be deleted")

    dedupe = subparsers.add_parser("dedupe", help="Delete signals with duplicate original text")
    dedupe.add_argument("--dry-run", action="store_true", help="Count duplicates without deleting")
    dedupe.add_argument(
        "--batch-size", type=int, default=None, help="Ids per delete statement (default: dedupe.delete_batch_size)"
    )

    analyze = subparsers.add_parser("analyze", help="Ad hoc analysis of free text")
    analyze.add_argument("text", help="Text to analyse")
    analyze.add_argument("--type", dest="analysis_type", choices=["classify", "validate"], default="classify")

    subparsers.add_parser("stats", help="Show signal counts by status, priority and day")

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")

    return parser


def _print(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _stats(services: PipelineServices) -> Dict[str, Any]:
    store = services.signal_store()
    return {
        "by_status": store.count_by_status(),
        "by_priority": store.count_by_priority(),
        "retention": store.retention_stats().to_dict(),
    }


def run_command(args: argparse.Namespace, services: PipelineServices) -> int:
    """Execute a parsed command. Returns the process exit code."""
    if args.command == "triage":
        body = {"batchSize": args.batch_size, "priority": args.priority}
        status, payload = handle_auto_triage(services, body)
    elif args.command == "archive":
        body = {
            "batchSize": args.batch_size,
            "archiveAgeDays": args.age_days,
            "deleteAfterSync": args.delete_after_sync,
        }
        status, payload = handle_sync_archive(services, body)
    elif args.command == "cleanup":
        if args.dry_run:
            result = RetentionJanitor(services.signal_store(), clock=services.clock).preview()
            status, payload = 200, result.to_dict()
        else:
            status, payload = handle_daily_cleanup(services)
    elif args.command == "dedupe":
        batch_size = args.batch_size
        if batch_size is None:
            batch_size = int(services.config.get("dedupe.delete_batch_size", DEFAULT_DELETE_BATCH_SIZE))
        result = DuplicatePurger(services.signal_store(), batch_size=batch_size).run(dry_run=args.dry_run)
        status, payload = (200 if result.errors == 0 else 500), result.to_dict()
    elif args.command == "analyze":
        status, payload = handle_analyze_signal(
            services, {"text": args.text, "analysisType": args.analysis_type}
        )
    elif args.command == "stats":
        status, payload = 200, _stats(services)
    elif args.command == "serve":
        import uvicorn
        from ..api.server import create_app

        uvicorn.run(create_app(services), host=args.host, port=args.port)
        return 0
    else:
        raise ValueError(f"Unknown command: {args.command}")

    _print(payload)
    return 0 if status < 400 else 1


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = SurveillanceConfig(args.config)
    except (SurveillanceError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    level = logging.DEBUG if args.verbose else config.log_level
    configure_logging(level=level, structured=args.structured_logs or bool(config.get("logging.structured")))

    services = PipelineServices(config)
    try:
        return run_command(args, services)
    except SurveillanceError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        services.close()


if __name__ == "__main__":
    sys.exit(main())
