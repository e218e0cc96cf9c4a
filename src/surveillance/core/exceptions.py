"""
Custom exceptions for the signal triage pipeline.
"""

from typing import List, Optional


class SurveillanceError(Exception):
    """Base exception for all pipeline errors."""
    pass


class ProviderError(SurveillanceError):
    """
    Non-success response from an AI provider.
    
    Raised when:
    - Provider is unreachable or the request times out
    - Provider returns a non-2xx status
    - Provider response carries no message content
    """
    
    def __init__(self, message: str, provider: str = None, status_code: int = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    @property
    def is_retryable_status(self) -> bool:
        """True for throttling (429) and server-side (5xx) failures."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class ParseError(SurveillanceError):
    """
    Provider response is not valid or expected JSON.
    
    Raised when:
    - Message content is not parseable JSON
    - JSON does not conform to the TriageDecision contract
    """
    
    def __init__(self, message: str, validation_errors: Optional[List[str]] = None, provider: str = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []
        self.provider = provider


class ConfigError(SurveillanceError):
    """
    Required credentials or connection parameters are missing.
    
    Fatal for the current invocation only; no data is touched.
    """
    
    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class StoreError(SurveillanceError):
    """
    Row-level read/write failure against the primary or archive store.
    """
    pass


class LifecycleError(SurveillanceError):
    """
    Illegal signal status transition requested by a workflow.
    """
    
    def __init__(self, message: str, current: str = None, target: str = None):
        super().__init__(message)
        self.current = current
        self.target = target
