"""Query values for each compilation stage.

::

    RawQuery ──forge_stage_two_query──▶ StageTwoQuery ──forge_stage_three_query──▶ StageThreeQuery
    (caller's words)                    (canonical, logical)                       (tables and columns)

Each stage is a new frozen value; a later stage never writes back into an
earlier one.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class QueryMethod(str, Enum):
    """Logical query methods."""

    CREATE = "create"
    CREATE_EACH = "create_each"
    UPDATE = "update"
    DESTROY = "destroy"
    FIND = "find"
    FIND_ONE = "find_one"
    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    STREAM = "stream"

    @property
    def is_mutation(self) -> bool:
        return self in _MUTATIONS

    @property
    def is_aggregate(self) -> bool:
        return self in (QueryMethod.COUNT, QueryMethod.SUM, QueryMethod.AVG)

    @property
    def adapter_method(self) -> str:
        """Name of the adapter method that serves this query."""
        if self in (QueryMethod.FIND_ONE, QueryMethod.STREAM):
            return QueryMethod.FIND.value
        return self.value


_MUTATIONS = frozenset(
    {QueryMethod.CREATE, QueryMethod.CREATE_EACH, QueryMethod.UPDATE, QueryMethod.DESTROY}
)


@dataclass(frozen=True)
class QueryMeta:
    """
    Recognized meta options.

    Attributes:
        fetch: Return the affected records from a mutation
        skip_all_lifecycle_callbacks: Run no lifecycle hooks
        skip_record_verification: Do not check records against the schema
    """

    fetch: bool = False
    skip_all_lifecycle_callbacks: bool = False
    skip_record_verification: bool = False

    @classmethod
    def coerce(cls, value: QueryMeta | Mapping[str, Any] | None) -> QueryMeta:
        """Build from ``None``, a mapping, or an existing instance.

        Raises ``TypeError`` for unknown keys or non-boolean flags; the
        stage-2 compiler reports those as ``E_INVALID_META``.
        """
        if value is None:
            return cls()
        if isinstance(value, QueryMeta):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"meta should be a dictionary, got {value!r}")
        unknown = set(value) - {"fetch", "skip_all_lifecycle_callbacks", "skip_record_verification"}
        if unknown:
            raise TypeError(f"Unrecognized meta key(s): {', '.join(sorted(unknown))}")
        for key, flag in value.items():
            if flag is not None and not isinstance(flag, bool):
                raise TypeError(f"meta `{key}` should be true or false, got {flag!r}")
        return cls(**{key: bool(flag) for key, flag in value.items()})


@dataclass
class RawQuery:
    """A query as the caller phrased it, before any validation."""

    method: QueryMethod
    using: str
    criteria: Any = None
    values_to_set: Any = None
    new_records: Any = None
    numeric_attr_name: Any = None
    populates: Any = None
    each_record_fn: Any = None
    each_batch_fn: Any = None
    meta: Any = None


@dataclass(frozen=True)
class Criteria:
    """
    Normalized criteria.

    ``limit=None`` means unbounded. ``select == ("*",)`` means all stored
    attributes. ``sort`` is a tuple of ``(attribute, "ASC" | "DESC")``.
    """

    where: Mapping[str, Any] = field(default_factory=dict)
    limit: int | None = None
    skip: int = 0
    sort: tuple[tuple[str, str], ...] = ()
    select: tuple[str, ...] = ("*",)
    omit: tuple[str, ...] = ()


@dataclass(frozen=True)
class StageTwoQuery:
    """Validated, canonical, datastore-agnostic query."""

    method: QueryMethod
    using: str
    meta: QueryMeta = field(default_factory=QueryMeta)
    criteria: Criteria | None = None
    values_to_set: Mapping[str, Any] | None = None
    new_records: tuple[Mapping[str, Any], ...] | None = None
    numeric_attr_name: str | None = None
    populates: Mapping[str, Criteria] = field(default_factory=dict)
    each_record_fn: Callable[..., Any] | None = None
    each_batch_fn: Callable[..., Any] | None = None


@dataclass(frozen=True)
class Join:
    """How to fetch one populated association for a set of parent records."""

    alias: str
    parent_identity: str
    parent_table: str
    parent_column: str
    child_identity: str
    child_table: str
    child_column: str
    singular: bool
    criteria: Criteria


@dataclass(frozen=True)
class StageThreeQuery:
    """
    Physical query bound to one model's table and datastore.

    Every attribute name has been rewritten to its column name; this is the
    value handed to the adapter.
    """

    method: QueryMethod
    using: str
    datastore: str
    meta: QueryMeta
    criteria: Criteria | None = None
    values_to_set: Mapping[str, Any] | None = None
    new_records: tuple[Mapping[str, Any], ...] | None = None
    numeric_column: str | None = None
    joins: tuple[Join, ...] = ()


__all__ = [
    "QueryMethod",
    "QueryMeta",
    "RawQuery",
    "Criteria",
    "StageTwoQuery",
    "Join",
    "StageThreeQuery",
]
