"""Stage-3 compiler: logical query -> physical query.

Binds a :class:`StageTwoQuery` to the model's table and datastore and
rewrites every attribute name into a column name, using the model's
:class:`~spine_orm.schema.Transformer`. Populates become :class:`Join`
instructions resolved through the full registry, because the columns on
the other side of an association belong to another model.
"""

from __future__ import annotations

from spine_orm.errors import ConfigError, StageThreeError
from spine_orm.schema import ModelRegistry, Transformer

from .descriptor import Criteria, Join, StageThreeQuery, StageTwoQuery


def _physical_criteria(criteria: Criteria, transformer: Transformer) -> Criteria:
    select = criteria.select
    if select != ("*",):
        select = tuple(transformer.column_for(name) for name in select)
    return Criteria(
        where=transformer.serialize_where(criteria.where),
        limit=criteria.limit,
        skip=criteria.skip,
        sort=transformer.serialize_sort(criteria.sort),
        select=select,
        omit=tuple(transformer.column_for(name) for name in criteria.omit),
    )


def forge_stage_three_query(query: StageTwoQuery, registry: ModelRegistry) -> StageThreeQuery:
    """Rewrite *query* into the physical vocabulary of its datastore."""
    try:
        entry = registry.get(query.using)
    except ConfigError as exc:
        raise StageThreeError(
            f"Cannot bind query: unknown model `{query.using}`", cause=exc
        ) from exc

    transformer = entry.transformer
    definition = entry.definition

    joins = tuple(
        _build_join(query.using, alias, child_criteria, registry)
        for alias, child_criteria in query.populates.items()
        if child_criteria is not None
    )

    return StageThreeQuery(
        method=query.method,
        using=definition.table,
        datastore=entry.datastore.name,
        meta=query.meta,
        criteria=(
            _physical_criteria(query.criteria, transformer)
            if query.criteria is not None
            else None
        ),
        values_to_set=(
            transformer.serialize_values(query.values_to_set)
            if query.values_to_set is not None
            else None
        ),
        new_records=(
            tuple(transformer.serialize_values(record) for record in query.new_records)
            if query.new_records is not None
            else None
        ),
        numeric_column=(
            transformer.column_for(query.numeric_attr_name)
            if query.numeric_attr_name is not None
            else None
        ),
        joins=joins,
    )


def _build_join(
    parent_identity: str, alias: str, criteria: Criteria, registry: ModelRegistry
) -> Join:
    parent = registry.get(parent_identity)
    attr = parent.definition.attribute(alias)
    if attr is None or not attr.is_association:
        raise StageThreeError(
            f"Cannot resolve association `{parent_identity}.{alias}`"
        ).with_context(model_identity=parent_identity)

    child_identity = attr.model or attr.collection
    if child_identity not in registry:
        raise StageThreeError(
            f"Association `{parent_identity}.{alias}` points to unknown model `{child_identity}`"
        ).with_context(model_identity=parent_identity)
    child = registry.get(child_identity)

    if attr.is_singular_association:
        # parent.fk -> child.pk
        parent_column = parent.transformer.column_for(alias)
        child_column = child.transformer.column_for(child.definition.primary_key)
    else:
        # parent.pk <- child.via
        via = child.definition.attribute(attr.via)
        if via is None or via.model != parent_identity:
            raise StageThreeError(
                f"Association `{parent_identity}.{alias}` has a broken `via` "
                f"(`{child_identity}.{attr.via}`)"
            ).with_context(model_identity=parent_identity)
        parent_column = parent.transformer.column_for(parent.definition.primary_key)
        child_column = child.transformer.column_for(attr.via)

    return Join(
        alias=alias,
        parent_identity=parent_identity,
        parent_table=parent.definition.table,
        parent_column=parent_column,
        child_identity=child_identity,
        child_table=child.definition.table,
        child_column=child_column,
        singular=attr.is_singular_association,
        criteria=_physical_criteria(criteria, child.transformer),
    )


__all__ = ["forge_stage_three_query"]
