"""Feature prioritization scoring.

RICE: score = reach * impact * confidence / effort
    >= 6 must-have, >= 3 should-have, >= 1 could-have, else wont-have
ICE: score = (impact + confidence + ease) / 3
    >= 7.5 must-have, >= 5 should-have, >= 2.5 could-have, else wont-have
MoSCoW: the supplied priority is kept (could-have when missing).

Scores are always recomputed here when the inputs are present, so a model
that does arithmetic badly cannot mislabel a feature.
"""

from typing import List, Optional, Sequence, Tuple

import structlog

from mvp_builder.domain.models.artifacts import (
    Feature,
    PrioritizationMethod,
    Priority,
)

log = structlog.get_logger(__name__)

RICE_THRESHOLDS: Sequence[Tuple[float, Priority]] = (
    (6.0, Priority.MUST_HAVE),
    (3.0, Priority.SHOULD_HAVE),
    (1.0, Priority.COULD_HAVE),
)

ICE_THRESHOLDS: Sequence[Tuple[float, Priority]] = (
    (7.5, Priority.MUST_HAVE),
    (5.0, Priority.SHOULD_HAVE),
    (2.5, Priority.COULD_HAVE),
)


def rice_score(reach: float, impact: float, confidence: float, effort: float) -> float:
    if effort <= 0:
        raise ValueError("RICE effort must be positive")
    return reach * impact * confidence / effort


def ice_score(impact: float, confidence: float, ease: float) -> float:
    return (impact + confidence + ease) / 3


def bucket(score: float, thresholds: Sequence[Tuple[float, Priority]]) -> Priority:
    for minimum, priority in thresholds:
        if score >= minimum:
            return priority
    return Priority.WONT_HAVE


def _compute(feature: Feature, method: PrioritizationMethod) -> Optional[float]:
    if method == PrioritizationMethod.RICE:
        values = (feature.reach, feature.impact, feature.confidence, feature.effort)
        if any(v is None for v in values) or feature.effort <= 0:
            return None
        return rice_score(*values)
    if method == PrioritizationMethod.ICE:
        values = (feature.impact, feature.confidence, feature.ease)
        if any(v is None for v in values):
            return None
        return ice_score(*values)
    return None


def score_feature(feature: Feature, method: PrioritizationMethod) -> Feature:
    """Return a copy of `feature` with score and priority filled in.

    Features missing the inputs for their method keep whatever priority they
    carry, or could-have when they have none.
    """
    score = _compute(feature, method)
    if score is None:
        return feature.model_copy(
            update={"priority": feature.priority or Priority.COULD_HAVE}
        )

    thresholds = RICE_THRESHOLDS if method == PrioritizationMethod.RICE else ICE_THRESHOLDS
    return feature.model_copy(
        update={"score": round(score, 2), "priority": bucket(score, thresholds)}
    )


def score_features(
    features: List[Feature], method: PrioritizationMethod
) -> List[Feature]:
    """Score every feature; the result is ordered by score, highest first.

    Unscored features keep their relative order after the scored ones.
    """
    scored = [score_feature(f, method) for f in features]
    ranked = sorted(
        scored, key=lambda f: (f.score is None, -(f.score or 0.0))
    )
    log.debug(
        "features_scored",
        method=method.value,
        feature_count=len(ranked),
        scored=sum(1 for f in ranked if f.score is not None),
    )
    return ranked
