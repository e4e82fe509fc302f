"""Criteria normalization.

Turns whatever the caller passed as criteria into a :class:`Criteria`
value, or raises ``ForgeError("E_INVALID_CRITERIA", ...)``. Criteria that
provably match nothing raise :class:`~spine_orm.errors.NoopQuery`.

Accepted shapes::

    None                                  -> everything
    7, "abc", [1, 2]                      -> primary-key shorthand
    {"name": "a"}                         -> where clause
    {"where": {...}, "limit": 10, ...}    -> full criteria

Where-clause constraints are a scalar (equality) or a modifier mapping::

    {"age": {">": 21, "<=": 65}, "name": {"in": ["a", "b"]}}
    {"or": [{"name": "a"}, {"age": {"<": 3}}]}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from spine_orm.errors import ForgeError, NoopQuery
from spine_orm.schema import AttributeType, ModelDefinition
from spine_orm.utils import is_number

from .descriptor import Criteria, QueryMethod

CRITERIA_KEYS = frozenset({"where", "limit", "skip", "sort", "select", "omit"})

MODIFIERS = frozenset(
    {"in", "nin", "<", "<=", ">", ">=", "!=", "like", "contains", "startsWith", "endsWith"}
)

_STRING_MODIFIERS = frozenset({"like", "contains", "startsWith", "endsWith"})

# Constraint that places no restriction (e.g. `nin: []`); dropped from the clause.
_MATCH_ALL = object()

# Methods that accept pagination, sorting and projection.
_READ_METHODS = frozenset({QueryMethod.FIND, QueryMethod.FIND_ONE, QueryMethod.STREAM})


def _invalid(details: str) -> ForgeError:
    return ForgeError("E_INVALID_CRITERIA", details)


def _is_pk_value(value: Any) -> bool:
    return isinstance(value, str) or is_number(value)


def normalize_criteria(
    criteria: Any,
    definition: ModelDefinition,
    method: QueryMethod,
) -> Criteria:
    """Validate and normalize *criteria* for *method* on *definition*."""
    pk = definition.primary_key

    if criteria is None:
        criteria = {}
    elif _is_pk_value(criteria):
        criteria = {"where": {pk: criteria}}
    elif isinstance(criteria, (list, tuple)):
        criteria = {"where": {pk: {"in": list(criteria)}}}
    elif not isinstance(criteria, Mapping):
        raise _invalid(f"Criteria should be a dictionary, got {criteria!r}")

    if not CRITERIA_KEYS.intersection(criteria):
        criteria = {"where": dict(criteria)}
    else:
        extra = set(criteria) - CRITERIA_KEYS
        if extra:
            raise _invalid(
                f"Unrecognized top-level criteria key(s): {', '.join(sorted(extra))}. "
                "Put attribute constraints inside `where`."
            )

    if method not in _READ_METHODS:
        disallowed = set(criteria) - {"where"}
        if disallowed:
            raise _invalid(
                f"`{method.value}` queries only support `where`; cannot use "
                f"{', '.join(sorted(disallowed))}"
            )

    where = normalize_where(criteria.get("where"), definition)
    limit = _normalize_limit(criteria.get("limit"))
    skip = _normalize_skip(criteria.get("skip"))
    sort = _normalize_sort(criteria.get("sort"), definition)
    select, omit = _normalize_projection(criteria.get("select"), criteria.get("omit"), definition)

    if limit == 0:
        raise NoopQuery("`limit: 0` matches no records.")

    return Criteria(where=where, limit=limit, skip=skip, sort=sort, select=select, omit=omit)


def normalize_where(where: Any, definition: ModelDefinition) -> dict[str, Any]:
    """Normalize a where clause; raises NoopQuery when it can match nothing."""
    if where is None:
        return {}
    if not isinstance(where, Mapping):
        raise _invalid(f"`where` should be a dictionary, got {where!r}")

    result: dict[str, Any] = {}
    for key, constraint in where.items():
        if key == "and":
            clauses = _conjunct(key, constraint, definition)
            if clauses:
                result["and"] = clauses
        elif key == "or":
            result["or"] = _disjunct(constraint, definition)
        else:
            normalized = _normalize_constraint(key, constraint, definition)
            if normalized is not _MATCH_ALL:
                result[key] = normalized
    return result


def _conjunct(key: str, clauses: Any, definition: ModelDefinition) -> list[dict[str, Any]]:
    if not isinstance(clauses, (list, tuple)):
        raise _invalid(f"`{key}` should be a list of where clauses, got {clauses!r}")
    normalized = [normalize_where(clause, definition) for clause in clauses]
    return [clause for clause in normalized if clause]


def _disjunct(clauses: Any, definition: ModelDefinition) -> list[dict[str, Any]]:
    if not isinstance(clauses, (list, tuple)):
        raise _invalid(f"`or` should be a list of where clauses, got {clauses!r}")
    if not clauses:
        raise NoopQuery("`or: []` matches no records.")

    survivors: list[dict[str, Any]] = []
    for clause in clauses:
        try:
            survivors.append(normalize_where(clause, definition))
        except NoopQuery:
            continue
    if not survivors:
        raise NoopQuery("Every branch of `or` matches no records.")
    return survivors


def _normalize_constraint(attr_name: str, constraint: Any, definition: ModelDefinition) -> Any:
    attr = definition.attribute(attr_name)
    if attr is None:
        raise _invalid(f"`{attr_name}` is not a recognized attribute of `{definition.identity}`")
    if attr.is_plural_association:
        raise _invalid(
            f"Cannot filter by `{attr_name}`: it is a plural association (collection)"
        )

    if not isinstance(constraint, Mapping):
        if isinstance(constraint, (list, tuple)):
            raise _invalid(
                f"Constraint for `{attr_name}` is a list; use `{{'in': [...]}}` instead"
            )
        return constraint

    if not constraint:
        raise _invalid(f"Constraint for `{attr_name}` is an empty dictionary")

    normalized: dict[str, Any] = {}
    for modifier, operand in constraint.items():
        if modifier not in MODIFIERS:
            raise _invalid(f"Unrecognized modifier `{modifier}` for `{attr_name}`")
        if modifier in ("in", "nin"):
            if not isinstance(operand, (list, tuple)):
                raise _invalid(f"`{modifier}` for `{attr_name}` should be a list")
            operand = _distinct_items(attr_name, attr, modifier, operand)
            if modifier == "in" and not operand:
                raise NoopQuery(f"`in: []` for `{attr_name}` matches no records.")
            if modifier == "nin" and not operand:
                continue
        elif modifier in _STRING_MODIFIERS and not isinstance(operand, str):
            raise _invalid(f"`{modifier}` for `{attr_name}` should be a string")
        normalized[modifier] = operand

    return normalized if normalized else _MATCH_ALL


def _distinct_items(attr_name: str, attr: Any, modifier: str, operand: Any) -> list[Any]:
    structured = attr.logical_type in (AttributeType.JSON, AttributeType.REF)
    items: list[Any] = []
    for item in operand:
        if not structured and isinstance(item, (Mapping, list, tuple)):
            raise _invalid(
                f"`{modifier}` for `{attr_name}` should list plain values, got {item!r}"
            )
        if item not in items:
            items.append(item)
    return items


def _normalize_limit(limit: Any) -> int | None:
    if limit is None:
        return None
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 0:
        raise _invalid(f"`limit` should be a non-negative integer, got {limit!r}")
    return limit


def _normalize_skip(skip: Any) -> int:
    if skip is None:
        return 0
    if not isinstance(skip, int) or isinstance(skip, bool) or skip < 0:
        raise _invalid(f"`skip` should be a non-negative integer, got {skip!r}")
    return skip


def _parse_direction(attr_name: str, direction: Any) -> str:
    if not isinstance(direction, str) or direction.upper() not in ("ASC", "DESC"):
        raise _invalid(f"Sort direction for `{attr_name}` should be ASC or DESC, got {direction!r}")
    return direction.upper()


def _normalize_sort(sort: Any, definition: ModelDefinition) -> tuple[tuple[str, str], ...]:
    if sort is None:
        return ()
    if isinstance(sort, str):
        sort = [sort]
    elif isinstance(sort, Mapping):
        sort = [{key: value} for key, value in sort.items()]
    if not isinstance(sort, (list, tuple)):
        raise _invalid(f"`sort` should be a string, list or dictionary, got {sort!r}")

    result: list[tuple[str, str]] = []
    for item in sort:
        if isinstance(item, str):
            parts = item.split()
            if len(parts) == 1:
                name, direction = parts[0], "ASC"
            elif len(parts) == 2:
                name, direction = parts
            else:
                raise _invalid(f"Cannot parse sort clause {item!r}")
        elif isinstance(item, Mapping) and len(item) == 1:
            (name, direction), = item.items()
        else:
            raise _invalid(f"Cannot parse sort clause {item!r}")

        attr = definition.attribute(name)
        if attr is None or attr.is_plural_association:
            raise _invalid(f"Cannot sort by `{name}`: not a stored attribute of `{definition.identity}`")
        result.append((name, _parse_direction(name, direction)))
    return tuple(result)


def _normalize_projection(
    select: Any, omit: Any, definition: ModelDefinition
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    if select is not None and omit is not None:
        raise _invalid("Cannot use both `select` and `omit`")

    def names(key: str, value: Any) -> list[str]:
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise _invalid(f"`{key}` should be a list of attribute names, got {value!r}")
        for name in value:
            if name == "*" and key == "select":
                continue
            attr = definition.attribute(name)
            if attr is None or attr.is_plural_association:
                raise _invalid(f"Cannot {key} `{name}`: not a stored attribute of `{definition.identity}`")
        return list(dict.fromkeys(value))

    if select is not None:
        selected = names("select", select)
        if not selected or "*" in selected:
            return ("*",), ()
        if definition.primary_key not in selected:
            selected.insert(0, definition.primary_key)
        return tuple(selected), ()

    if omit is not None:
        omitted = names("omit", omit)
        if definition.primary_key in omitted:
            raise _invalid(f"Cannot omit the primary key `{definition.primary_key}`")
        return ("*",), tuple(omitted)

    return ("*",), ()


__all__ = ["CRITERIA_KEYS", "MODIFIERS", "normalize_criteria", "normalize_where"]
