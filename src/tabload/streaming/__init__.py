"""
Batch streaming into storage backends.

The insert pipeline lives in tabload.streaming.pipeline and is imported from
there directly; this package only re-exports its dependency-free building blocks.
"""

from .resilience import ErrorClassifier, ExponentialBackoff, RetryConfig
from .types import BatchSpec, SealedBatch

__all__ = ['ErrorClassifier', 'ExponentialBackoff', 'RetryConfig', 'BatchSpec', 'SealedBatch']
