"""Attribute name <-> column name mapping for one model.

The transformer is the only place that knows how a model's logical
attribute names are spelled in the physical datastore. The stage-3
compiler uses it to rewrite outgoing queries; the result materializer
uses it to rewrite incoming records.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from spine_orm.errors import AdapterContractError

from .model import ModelDefinition

# Where-clause keys that are not attribute names.
_CONJUNCTIONS = ("and", "or")


class Transformer:
    """Bidirectional attribute/column mapping built from a model definition."""

    def __init__(self, definition: ModelDefinition):
        self.identity = definition.identity
        self._to_column: dict[str, str] = {}
        self._to_attribute: dict[str, str] = {}
        for name, attr in definition.stored_attributes().items():
            column = attr.column_name or name
            self._to_column[name] = column
            self._to_attribute[column] = name

    def column_for(self, attr_name: str) -> str:
        """Column for *attr_name* (unknown names pass through unchanged)."""
        return self._to_column.get(attr_name, attr_name)

    def attribute_for(self, column_name: str) -> str:
        return self._to_attribute.get(column_name, column_name)

    def serialize_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {self.column_for(name): value for name, value in values.items()}

    def serialize_where(self, where: Mapping[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, constraint in where.items():
            if key in _CONJUNCTIONS:
                result[key] = [self.serialize_where(clause) for clause in constraint]
            else:
                result[self.column_for(key)] = constraint
        return result

    def serialize_sort(
        self, sort: tuple[tuple[str, str], ...]
    ) -> tuple[tuple[str, str], ...]:
        return tuple((self.column_for(name), direction) for name, direction in sort)

    def unserialize(self, record: Any) -> dict[str, Any]:
        """Rewrite a physical record's column names into attribute names.

        Columns the model does not declare are kept under their own name
        (adapters may add implementation fields).
        """
        if not isinstance(record, Mapping):
            raise AdapterContractError(
                "Unexpected behavior in database adapter: every record should "
                f"be a dictionary of column values, but got: {record!r}"
            ).with_context(model_identity=self.identity)
        return {self.attribute_for(column): value for column, value in record.items()}


__all__ = ["Transformer"]
