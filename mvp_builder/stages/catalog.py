"""Stage catalog for the MVP builder wizard.

The ten wizard stages form a single ordered enum; a stage's position is its
index in that enum, so there is no separate string/number lookup table to keep
in sync. Descriptive content for each stage (concept text, input fields,
rubric and the JSON shape the model must return) lives in catalog.yaml next to
this module and is validated against the enum when first loaded.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

import structlog
import yaml
from pydantic import BaseModel, Field

from mvp_builder.core.exceptions import ConfigurationError, UnknownStageError

log = structlog.get_logger(__name__)

CATALOG_FILE = Path(__file__).parent / "catalog.yaml"

# Legacy identifiers still sent by older clients
STAGE_ALIASES: Dict[str, str] = {"problem-analysis": "problem-discovery"}

# Thresholds for a "real" attempt at a stage
MIN_FILLED_FIELDS = 4
MIN_TOTAL_CHARS = 160


class Stage(str, Enum):
    """Wizard stages in workflow order."""

    PROBLEM_DISCOVERY = "problem-discovery"
    MARKET_RESEARCH = "market-research"
    ROOT_CAUSE_ANALYSIS = "root-cause-analysis"
    EXISTING_SOLUTIONS = "existing-solutions"
    CUSTOMER_PROFILE = "customer-profile"
    USE_CASE_DEFINITION = "use-case-definition"
    PRODUCT_REQUIREMENTS = "product-requirements"
    PRIORITIZATION = "prioritization"
    EXPORT = "export"
    FEEDBACK = "feedback"

    @classmethod
    def ordered(cls) -> List["Stage"]:
        return list(cls)

    @classmethod
    def first(cls) -> "Stage":
        return cls.ordered()[0]

    @classmethod
    def last(cls) -> "Stage":
        return cls.ordered()[-1]

    @property
    def position(self) -> int:
        """1-based position in the workflow."""
        return Stage.ordered().index(self) + 1

    def next(self) -> "Stage":
        """Following stage; the final stage maps to itself."""
        stages = Stage.ordered()
        return stages[min(self.position, len(stages) - 1)]

    def previous(self) -> "Stage":
        """Preceding stage; the first stage maps to itself."""
        stages = Stage.ordered()
        return stages[max(self.position - 2, 0)]

    @classmethod
    def from_position(cls, position: int) -> "Stage":
        stages = cls.ordered()
        if not 1 <= position <= len(stages):
            raise UnknownStageError(
                f"Stage position must be between 1 and {len(stages)}, got {position}"
            )
        return stages[position - 1]

    @classmethod
    def parse(cls, value: Union["Stage", str, int]) -> "Stage":
        """Resolve a stage from its id, a legacy alias or its 1-based position.

        Raises:
            UnknownStageError: value does not name a catalog stage
        """
        if isinstance(value, Stage):
            return value
        if isinstance(value, int):
            return cls.from_position(value)
        text = str(value).strip()
        if text.isdigit():
            return cls.from_position(int(text))
        text = STAGE_ALIASES.get(text, text)
        try:
            return cls(text)
        except ValueError as e:
            raise UnknownStageError(f"Unknown stage: {value}") from e


FieldType = Literal["short_text", "long_text", "number", "select", "multi", "links"]


class FieldDef(BaseModel):
    """One input a founder provides for a stage."""

    id: str
    label: str
    type: FieldType
    required: bool = False
    min_chars: Optional[int] = Field(default=None, ge=1)
    options: List[str] = Field(default_factory=list)
    min_value: Optional[float] = None
    max_value: Optional[float] = None


class RubricCriterion(BaseModel):
    id: str
    label: str
    description: str


class StageDef(BaseModel):
    """Static definition of a wizard stage (immutable at runtime)."""

    model_config = {"frozen": True}

    id: Stage
    position: int = Field(ge=1, description="1-based workflow position")
    title: str
    artifact_key: str = Field(description="Key of the stage artifact in session data")
    ai_generated: bool = Field(description="Whether the artifact comes from the model")
    concept: str
    example_good: str = ""
    example_bad: str = ""
    required_fields: List[FieldDef] = Field(default_factory=list)
    rubric: List[RubricCriterion] = Field(default_factory=list)
    output_spec: Dict[str, Any] = Field(
        default_factory=dict, description="JSON shape the model must return"
    )
    instructions: str = ""
    depends_on: List[Stage] = Field(default_factory=list)


# Module-level cache (catalog does not change at runtime)
_cache: Dict[Stage, StageDef] = {}


def load_stage_catalog(catalog_path: Optional[Path] = None) -> Dict[Stage, StageDef]:
    """Load and validate the stage catalog.

    Args:
        catalog_path: Override catalog.yaml location (for testing). An override
            bypasses the module cache.

    Returns:
        Mapping of every Stage to its StageDef, in workflow order

    Raises:
        ConfigurationError: YAML is missing, malformed or disagrees with Stage
    """
    if catalog_path is None and _cache:
        return _cache

    path = catalog_path or CATALOG_FILE
    if not path.exists():
        raise ConfigurationError(f"Stage catalog not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    entries = raw.get("stages", [])
    ids = [entry.get("id") for entry in entries]
    expected = [stage.value for stage in Stage]
    if ids != expected:
        raise ConfigurationError(
            f"Stage catalog must list {expected} in order, found {ids}"
        )

    catalog: Dict[Stage, StageDef] = {}
    for position, entry in enumerate(entries, start=1):
        try:
            stage_def = StageDef(position=position, **entry)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid catalog entry '{entry.get('id')}': {e}"
            ) from e
        for dependency in stage_def.depends_on:
            if dependency.position >= position:
                raise ConfigurationError(
                    f"Stage {stage_def.id.value} depends on later stage {dependency.value}"
                )
        catalog[stage_def.id] = stage_def

    if catalog_path is None:
        _cache.update(catalog)
        log.info("stage_catalog_loaded", stage_count=len(catalog))
    return catalog


def get_stage_def(stage: Union[Stage, str, int]) -> StageDef:
    return load_stage_catalog()[Stage.parse(stage)]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return not any(not _is_blank(item) for item in value)
    return False


def validate_attempt(stage_def: StageDef, attempt: Mapping[str, Any]) -> List[str]:
    """Check user input against a stage's declared fields.

    Returns:
        Human-readable error messages; empty when the input is acceptable
    """
    errors: List[str] = []
    for field in stage_def.required_fields:
        value = attempt.get(field.id)

        if _is_blank(value):
            if field.required:
                errors.append(f"{field.label} is required")
            continue

        if field.type == "number":
            try:
                number = float(value)
            except (TypeError, ValueError):
                errors.append(f"{field.label} must be a number")
                continue
            if field.min_value is not None and number < field.min_value:
                errors.append(f"{field.label} must be at least {field.min_value:g}")
            elif field.max_value is not None and number > field.max_value:
                errors.append(f"{field.label} must be at most {field.max_value:g}")
        elif field.type == "select" and field.options:
            if str(value) not in field.options:
                errors.append(
                    f"{field.label} must be one of: {', '.join(field.options)}"
                )
        elif isinstance(value, str) and field.min_chars:
            if len(value.strip()) < field.min_chars:
                errors.append(
                    f"{field.label} must be at least {field.min_chars} characters"
                )

    return errors


def min_attempt_satisfied(attempt: Mapping[str, Any]) -> bool:
    """True when the input has enough substance to be worth sending to the model.

    Either several fields are filled in, or the answers are long enough overall.
    """
    filled = 0
    total_chars = 0
    for value in attempt.values():
        if _is_blank(value):
            continue
        filled += 1
        if isinstance(value, (list, tuple)):
            total_chars += sum(len(str(item).strip()) for item in value)
        else:
            total_chars += len(str(value).strip())
    return filled >= MIN_FILLED_FIELDS or total_chars >= MIN_TOTAL_CHARS


def build_stage_context(
    stage: Union[Stage, str], data: Mapping[str, Any]
) -> Dict[str, Any]:
    """Collect the artifacts of the stages `stage` depends on.

    Args:
        stage: Stage about to be generated
        data: Session data keyed by artifact key

    Returns:
        Artifact key -> artifact, for every dependency already present
    """
    stage_def = get_stage_def(stage)
    catalog = load_stage_catalog()
    context: Dict[str, Any] = {}
    for dependency in stage_def.depends_on:
        key = catalog[dependency].artifact_key
        if key in data:
            context[key] = data[key]
    return context
