"""
Test support utilities for spine-orm tests.

This module provides helpers that don't fit as pytest fixtures but are
useful across multiple test files: the in-memory reference adapter and
a scripted adapter for contract-violation tests.
"""

from __future__ import annotations

from typing import Any

from .memory_adapter import AdapterError, MemoryAdapter, ScriptedAdapter, matches


def assert_dict_subset(actual: dict, expected: dict, path: str = "") -> None:
    """
    Assert that expected is a subset of actual (recursive).

    Args:
        actual: The full dictionary
        expected: The expected subset
        path: Current path (for error messages)
    """
    for key, expected_value in expected.items():
        current_path = f"{path}.{key}" if path else key

        assert key in actual, f"Missing key at {current_path}"
        actual_value = actual[key]

        if isinstance(expected_value, dict) and isinstance(actual_value, dict):
            assert_dict_subset(actual_value, expected_value, current_path)
        else:
            assert actual_value == expected_value, (
                f"Mismatch at {current_path}: "
                f"expected {expected_value!r}, got {actual_value!r}"
            )


def record_ids(records: list[dict[str, Any]], pk: str = "id") -> list[Any]:
    """Primary keys of *records*, in order."""
    return [record[pk] for record in records]


__all__ = [
    "AdapterError",
    "MemoryAdapter",
    "ScriptedAdapter",
    "assert_dict_subset",
    "matches",
    "record_ids",
]
