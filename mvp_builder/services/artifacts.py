"""Building stage artifacts.

Three ways an artifact comes into being:
    - from a model payload (artifact_from_payload): coerced into the stage's
      artifact model, merged with the fields the founder supplied and
      post-processed (solution filtering, deterministic scoring)
    - from the founder's input alone (user_artifact): export, feedback and
      market research without permission to research
    - from the stage default (fallback_artifact): when generation failed

Every path returns a complete artifact model, so consumers never have to
check for missing fields.
"""

import re
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, ValidationError as PydanticValidationError

from mvp_builder.core.exceptions import ValidationError
from mvp_builder.domain.models.artifacts import (
    ARTIFACT_MODELS,
    ExistingSolutionsArtifact,
    Feature,
    IcpArtifact,
    MarketFindings,
    MarketResearchArtifact,
    PrioritizationArtifact,
    PrioritizationMethod,
    ProblemStatementArtifact,
    ProductRequirementsArtifact,
    RootCauseArtifact,
    Solution,
    UseCaseArtifact,
)
from mvp_builder.services.prioritization import score_features
from mvp_builder.stages.catalog import Stage, get_stage_def

MAX_SOLUTIONS = 5
MIN_SOLUTION_RELEVANCE = 0.6
SOLUTION_DISCLAIMER = "Verify all details independently - this is AI analysis"
PRICING_PLACEHOLDER = "Pricing varies - verify current rates independently"

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_CURRENCY_AMOUNT_RE = re.compile(r"[$€£]\d")


def _snake_keys(value: Any) -> Any:
    """Recursively convert camelCase dict keys to snake_case."""
    if isinstance(value, dict):
        return {
            _CAMEL_RE.sub("_", str(k)).lower(): _snake_keys(v) for k, v in value.items()
        }
    if isinstance(value, list):
        return [_snake_keys(item) for item in value]
    return value


def _text(user_input: Mapping[str, Any], key: str) -> str:
    value = user_input.get(key)
    return str(value).strip() if value is not None else ""


def permission_granted(user_input: Mapping[str, Any]) -> bool:
    """Whether the founder allowed AI-assisted market research."""
    return str(user_input.get("permission", "")).strip().lower() == "yes"


def parse_input_features(user_input: Mapping[str, Any]) -> List[Feature]:
    """Features the founder submitted for prioritization.

    Raises:
        ValidationError: a feature is missing its name or has a non-numeric metric
    """
    features = []
    errors = []
    for index, item in enumerate(user_input.get("features") or [], start=1):
        if isinstance(item, Feature):
            features.append(item)
        elif isinstance(item, Mapping):
            try:
                features.append(Feature.model_validate(_snake_keys(dict(item))))
            except PydanticValidationError as e:
                for err in e.errors():
                    field = ".".join(str(part) for part in err["loc"])
                    errors.append(f"Feature {index} {field}: {err['msg']}")
        elif str(item).strip():
            features.append(Feature(name=str(item).strip()))
    if errors:
        raise ValidationError("Invalid features to prioritize", errors)
    return features


def _method(user_input: Mapping[str, Any]) -> PrioritizationMethod:
    return PrioritizationMethod(user_input.get("method") or PrioritizationMethod.RICE)


# =============================================================================
# Fallbacks
# =============================================================================


def _market_fallback(user_input: Mapping[str, Any]) -> MarketResearchArtifact:
    return MarketResearchArtifact(
        permission=permission_granted(user_input),
        existing_data=_text(user_input, "existing_data"),
        findings=MarketFindings(
            market_size=(
                "Research recommended: use industry reports, government data and "
                "competitor analysis to size the total, serviceable and obtainable "
                "market (TAM, SAM, SOM)."
            ),
            competitors=[
                "Direct competitors: companies solving the same problem with similar solutions",
                "Indirect competitors: companies solving the same problem differently",
                "Substitute solutions: other ways customers handle this need today",
            ],
            trends=[
                "Industry growth rates and market dynamics",
                "Technology adoption patterns affecting customer behavior",
                "Regulatory changes that could impact the market",
                "Investment and funding trends in this sector",
            ],
            confidence=0.4,
        ),
    )


def _solutions_fallback() -> ExistingSolutionsArtifact:
    return ExistingSolutionsArtifact(
        solutions=[
            Solution(
                name="Manual Research Framework",
                description=(
                    "AI analysis unavailable. Use this framework to research existing "
                    "solutions for your problem and verify every competitor independently."
                ),
                pros=[
                    "Direct control over research quality and accuracy",
                    "Ability to verify information from primary sources",
                ],
                cons=[
                    "Requires significant manual research effort",
                    "May require access to paid research databases",
                ],
                pricing="Research tools such as G2 or Crunchbase; verify current pricing",
                target_audience="Founders needing a verified competitive analysis",
                disclaimer="AI analysis failed. Research and verify all information independently.",
                relevance_score=1.0,
            )
        ],
        gaps=[],
    )


def fallback_artifact(stage: Stage, user_input: Mapping[str, Any]) -> BaseModel:
    """Default artifact used when generation for `stage` failed."""
    if stage == Stage.PROBLEM_DISCOVERY:
        problem = _text(user_input, "problem")
        return ProblemStatementArtifact(original=problem, refined=problem)
    if stage == Stage.MARKET_RESEARCH:
        return _market_fallback(user_input)
    if stage == Stage.ROOT_CAUSE_ANALYSIS:
        return RootCauseArtifact(primary_cause="Failed to analyze root cause")
    if stage == Stage.EXISTING_SOLUTIONS:
        return _solutions_fallback()
    if stage == Stage.CUSTOMER_PROFILE:
        return IcpArtifact()
    if stage == Stage.USE_CASE_DEFINITION:
        return UseCaseArtifact(narrative="Failed to generate use case")
    if stage == Stage.PRODUCT_REQUIREMENTS:
        return ProductRequirementsArtifact()
    if stage == Stage.PRIORITIZATION:
        method = _method(user_input)
        return PrioritizationArtifact(
            method=method, features=score_features(parse_input_features(user_input), method)
        )
    return user_artifact(stage, user_input)


# =============================================================================
# From founder input only
# =============================================================================


def user_artifact(stage: Stage, user_input: Mapping[str, Any]) -> BaseModel:
    """Artifact built purely from what the founder entered."""
    if stage == Stage.MARKET_RESEARCH:
        return MarketResearchArtifact(
            permission=permission_granted(user_input),
            existing_data=_text(user_input, "existing_data"),
        )
    key = get_stage_def(stage).artifact_key
    fields = {k: v for k, v in user_input.items() if v is not None}
    return ARTIFACT_MODELS[key].model_validate({**fields, "kind": key})


# =============================================================================
# From a model payload
# =============================================================================


def _clean_solutions(artifact: ExistingSolutionsArtifact) -> ExistingSolutionsArtifact:
    cleaned = []
    for solution in artifact.solutions:
        if solution.relevance_score < MIN_SOLUTION_RELEVANCE:
            continue
        update: Dict[str, Any] = {}
        if not solution.disclaimer:
            update["disclaimer"] = SOLUTION_DISCLAIMER
        if _CURRENCY_AMOUNT_RE.search(solution.pricing):
            update["pricing"] = PRICING_PLACEHOLDER
        cleaned.append(solution.model_copy(update=update))

    if not cleaned:
        cleaned = [
            Solution(
                name="No Direct Competitors Found",
                description=(
                    "No directly comparable solutions were found for this problem. "
                    "This may indicate an opportunity but needs manual research to confirm."
                ),
                pros=["Potential first-mover advantage", "Less direct competition at entry"],
                cons=["Market demand is unproven", "Customers may need educating"],
                pricing="Research needed - no comparable pricing models available",
                target_audience="Requires customer development to identify segments",
                disclaimer="No verified competitors found. Confirm the market gap.",
                relevance_score=1.0,
            )
        ]
    return artifact.model_copy(update={"solutions": cleaned[:MAX_SOLUTIONS]})


def artifact_from_payload(
    stage: Stage, payload: Mapping[str, Any], user_input: Mapping[str, Any]
) -> BaseModel:
    """Coerce a parsed model response into the stage's artifact.

    Raises:
        pydantic.ValidationError: payload does not fit the artifact schema
    """
    key = get_stage_def(stage).artifact_key
    data = _snake_keys(dict(payload))

    if stage == Stage.PROBLEM_DISCOVERY:
        data["original"] = _text(user_input, "problem")
        data["refined"] = data.get("refined") or data["original"]
    elif stage == Stage.MARKET_RESEARCH:
        if "findings" not in data:
            data = {"findings": data}
        data["permission"] = permission_granted(user_input)
        data["existing_data"] = _text(user_input, "existing_data")
    elif stage == Stage.PRIORITIZATION:
        data["method"] = _method(user_input)
        if not data.get("features"):
            data["features"] = parse_input_features(user_input)

    artifact = ARTIFACT_MODELS[key].model_validate({**data, "kind": key})

    if isinstance(artifact, ExistingSolutionsArtifact):
        artifact = _clean_solutions(artifact)
    elif isinstance(artifact, PrioritizationArtifact):
        artifact = artifact.model_copy(
            update={"features": score_features(artifact.features, artifact.method)}
        )
    return artifact
