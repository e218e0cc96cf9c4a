"""
Classifier gateways and the per-instance rate limiter.
"""

from .rate_limiter import RateLimiter
from .classifier_gateway import ClassifierGateway, TriageProvider
from .analysis_gateway import AnalysisGateway, AnalysisResult

__all__ = [
    "RateLimiter",
    "ClassifierGateway",
    "TriageProvider",
    "AnalysisGateway",
    "AnalysisResult",
]
