"""Utility helpers."""

from .backoff import with_retry

__all__ = ["with_retry"]
