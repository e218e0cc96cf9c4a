"""
Service wiring for the pipeline entry points.

One PipelineServices instance lives for the lifetime of a running process
(HTTP server or CLI invocation). It owns the per-instance rate limiters,
the shared HTTP session and the primary store connection; everything else
is built per request from configuration.

The HTTP server runs handlers in a threadpool. Store connections are not
safe to share between threads, so jobs that touch the primary store run one
at a time under ``exclusive()``.
"""

import logging
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

import requests

from ..config.settings import PROVIDER_AZURE_OPENAI, PROVIDER_OPENAI_COMPATIBLE, SurveillanceConfig
from ..gateway.analysis_gateway import AnalysisGateway
from ..gateway.classifier_gateway import ClassifierGateway, TriageProvider
from ..gateway.rate_limiter import RateLimiter
from ..providers import create_provider_client
from ..storage import create_archive_store, create_signal_store
from ..storage.archive_store import ArchiveStore
from ..storage.signal_store import SignalStore
from ..core.utils import utc_now


logger = logging.getLogger(__name__)


class PipelineServices:
    """
    Lazily-built collaborators for the runners.

    Stores may be injected (tests, CLI overrides); otherwise they are
    created from configuration on first use.
    """

    def __init__(
        self,
        config: SurveillanceConfig,
        session: Optional[requests.Session] = None,
        signal_store: Optional[SignalStore] = None,
        archive_store: Optional[ArchiveStore] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.session = session or requests.Session()
        self._signal_store = signal_store
        self._archive_store = archive_store
        self.sleep = sleep
        self.clock = clock
        self._lock = threading.RLock()

        max_requests = int(config.get("rate_limit.max_requests", 100))
        window_seconds = float(config.get("rate_limit.window_seconds", 60))
        self.triage_rate_limiter = RateLimiter(max_requests=max_requests, window_seconds=window_seconds)
        self.analysis_rate_limiter = RateLimiter(max_requests=max_requests, window_seconds=window_seconds)

    @contextmanager
    def exclusive(self) -> Iterator["PipelineServices"]:
        """Hold the services lock for the duration of one store-backed job."""
        with self._lock:
            yield self

    def signal_store(self) -> SignalStore:
        with self._lock:
            if self._signal_store is None:
                self._signal_store = create_signal_store(self.config)
            return self._signal_store

    def archive_store(self) -> ArchiveStore:
        if self._archive_store is not None:
            return self._archive_store
        return create_archive_store(self.config)

    def classifier_gateway(self) -> ClassifierGateway:
        """
        Build the triage gateway over every configured provider.

        Raises:
            ConfigError: If no provider is configured
        """
        providers = [
            TriageProvider(
                create_provider_client(provider_config, session=self.session),
                temperature=float(self.config.get("triage.temperature", 0.2)),
                max_tokens=int(self.config.get("triage.max_tokens", 300)),
                rate_limited=provider_config.kind == PROVIDER_AZURE_OPENAI,
            )
            for provider_config in self.config.require_provider_configs()
        ]
        return ClassifierGateway(providers, rate_limiter=self.triage_rate_limiter)

    def analysis_gateway(self) -> AnalysisGateway:
        """Build the ad hoc analysis gateway (Azure primary, gateway fallback)."""
        primary = None
        fallback = None
        for provider_config in self.config.get_provider_configs():
            if provider_config.kind == PROVIDER_AZURE_OPENAI and primary is None:
                primary = create_provider_client(provider_config, session=self.session)
            elif provider_config.kind == PROVIDER_OPENAI_COMPATIBLE and fallback is None:
                fallback = create_provider_client(provider_config, session=self.session)

        return AnalysisGateway(
            primary=primary,
            fallback=fallback,
            rate_limiter=self.analysis_rate_limiter,
            temperature=float(self.config.get("analysis.temperature", 0.3)),
            max_tokens=int(self.config.get("analysis.max_tokens", 1000)),
        )

    def close(self) -> None:
        with self._lock:
            if self._signal_store is not None:
                self._signal_store.close()
                self._signal_store = None
        self.session.close()
