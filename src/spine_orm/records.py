"""Result materialization: physical records -> verified logical records."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from spine_orm.errors import RecordVerificationError
from spine_orm.query import Criteria, QueryMeta
from spine_orm.schema import ModelDefinition, RegisteredModel, check_value


def materialize(
    entry: RegisteredModel,
    raw_records: Sequence[Any],
    meta: QueryMeta,
    criteria: Criteria | None = None,
) -> list[dict[str, Any]]:
    """Unserialize, verify and project *raw_records*.

    Raises ``AdapterContractError`` (from the transformer) for a record that
    is not a mapping, and :class:`RecordVerificationError` for one that
    does not match the logical schema.
    """
    records = [entry.transformer.unserialize(raw) for raw in raw_records]
    process_all_records(records, meta, entry.definition, criteria)
    if criteria is not None and criteria.omit:
        for record in records:
            for name in criteria.omit:
                record.pop(name, None)
    return records


def process_all_records(
    records: Sequence[dict[str, Any]],
    meta: QueryMeta,
    definition: ModelDefinition,
    criteria: Criteria | None = None,
) -> None:
    """Verify logical records against *definition*.

    Checks that the primary key is present and non-null and that every
    declared attribute that is present has a value of its declared type.
    Undeclared fields (added by the adapter) are tolerated. Attributes
    outside an explicit ``select`` are not required to be present.
    """
    if meta.skip_record_verification:
        return

    pk = definition.primary_key
    selected = None
    if criteria is not None and criteria.select != ("*",):
        selected = set(criteria.select)

    for index, record in enumerate(records):
        if record.get(pk) is None:
            raise _drift(
                definition,
                f"Record #{index} is missing its primary key `{pk}`: {record!r}",
            )
        for name, attr in definition.stored_attributes().items():
            if selected is not None and name not in selected:
                continue
            if name not in record:
                continue
            problem = check_value(name, attr, record[name])
            if problem:
                raise _drift(definition, f"Record #{index} (`{pk}`={record[pk]!r}): {problem}")


def _drift(definition: ModelDefinition, detail: str) -> RecordVerificationError:
    return RecordVerificationError(
        f"A record sent back from the database for model `{definition.identity}` does not "
        f"match the model's schema (is a migration missing?). {detail}",
        details=detail,
    ).with_context(model_identity=definition.identity)


__all__ = ["materialize", "process_all_records"]
