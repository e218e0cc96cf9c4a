"""
Signal Triage and Lifecycle Pipeline

This package takes freshly ingested outbreak signals, obtains an automated
triage decision from a chain of AI providers, applies that decision to the
signal's lifecycle, archives aged signals to a cold store, and purges stale
unvalidated signals from the primary store.

Key components:
- core/: Signal types, exceptions, logging and time utilities
- contracts/: Triage decision and run result contracts
- config/: YAML + environment configuration
- prompts/: System prompts and signal context rendering
- providers/: Chat-completion provider clients
- gateway/: Rate limiter, classifier gateway, ad hoc analysis gateway
- lifecycle/: Status state machine and manual review workflow
- storage/: Primary signal stores and archive (cold) stores
- runners/: Triage orchestrator, archive sync, retention janitor, dedupe
- api/: Request handlers and the HTTP server
- cli/: Command line entry point
"""

__version__ = "0.1.0"
