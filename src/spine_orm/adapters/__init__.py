"""Adapter boundary: the adapter contract and the dispatcher that enforces it.

Modules
-------
base            Adapter protocols (read-only, mutating, aggregating)
dispatcher      dispatch(): call the adapter, validate its answer
uniqueness      notUnique footprint -> UniquenessError
"""

from .base import AggregatingAdapter, Adapter, MutatingAdapter, RawRecord
from .dispatcher import dispatch
from .uniqueness import is_uniqueness_violation, transform_uniqueness_error

__all__ = [
    "Adapter",
    "AggregatingAdapter",
    "MutatingAdapter",
    "RawRecord",
    "dispatch",
    "is_uniqueness_violation",
    "transform_uniqueness_error",
]
