"""Retry engine for collaborator calls.

- classifier: error classification and backoff delays
- limiter: per-collaborator concurrency and rate limits
- executor: retry, fallback and quality-gate wrappers
- statistics: error counts over the activity log
"""

from app.services.retry.classifier import ErrorClass, ErrorClassifier
from app.services.retry.executor import StageContext, StageExecutor
from app.services.retry.limiter import CollaboratorGate, TokenBucket
from app.services.retry.statistics import ErrorStatistics, error_statistics

__all__ = [
    "CollaboratorGate",
    "ErrorClass",
    "ErrorClassifier",
    "ErrorStatistics",
    "StageContext",
    "StageExecutor",
    "TokenBucket",
    "error_statistics",
]
