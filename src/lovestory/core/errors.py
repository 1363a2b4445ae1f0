"""
Error taxonomy.

- `NotFound`: a lookup matched nothing (no sample, checkpoint or couple).
- `DataUnavailable`: a couple member has no usable location yet. This is an expected
  steady state for new couples; the proximity detector turns it into a result value.
- `InvalidInput`: malformed coordinates, dates or months. Subclasses `ValueError` so the
  request layer can map it the same way it maps pydantic validation failures.
- `StorageUnavailable`: the persistence backend failed; the only hard failure callers see.
"""

from __future__ import annotations


class LoveStoryError(Exception):
    """Base class for all domain errors."""


class NotFound(LoveStoryError, LookupError):
    pass


class DataUnavailable(LoveStoryError):
    pass


class InvalidInput(LoveStoryError, ValueError):
    pass


class StorageUnavailable(LoveStoryError):
    pass
