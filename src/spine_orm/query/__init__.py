"""Query values and the two compilers that produce them.

Modules
-------
descriptor      QueryMethod, QueryMeta, RawQuery, Criteria, StageTwoQuery,
                StageThreeQuery, Join
criteria        Criteria grammar and no-op detection
values          Values-to-set / new-record normalization
populates       Populate clause normalization
stage_two       forge_stage_two_query()
stage_three     forge_stage_three_query()
"""

from .descriptor import (
    Criteria,
    Join,
    QueryMeta,
    QueryMethod,
    RawQuery,
    StageThreeQuery,
    StageTwoQuery,
)
from .stage_three import forge_stage_three_query
from .stage_two import forge_stage_two_query

__all__ = [
    "Criteria",
    "Join",
    "QueryMeta",
    "QueryMethod",
    "RawQuery",
    "StageThreeQuery",
    "StageTwoQuery",
    "forge_stage_three_query",
    "forge_stage_two_query",
]
