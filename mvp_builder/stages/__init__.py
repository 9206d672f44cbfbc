"""Stage catalog: ordered wizard stages and their static definitions."""

from mvp_builder.stages.catalog import (
    Stage,
    StageDef,
    FieldDef,
    RubricCriterion,
    load_stage_catalog,
    get_stage_def,
    validate_attempt,
    min_attempt_satisfied,
    build_stage_context,
)

__all__ = [
    "Stage",
    "StageDef",
    "FieldDef",
    "RubricCriterion",
    "load_stage_catalog",
    "get_stage_def",
    "validate_attempt",
    "min_attempt_satisfied",
    "build_stage_context",
]
