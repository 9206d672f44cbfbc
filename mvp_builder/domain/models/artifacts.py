"""Stage artifact models.

Every wizard stage produces one structured artifact that is stored in the
session under the stage's artifact key. Artifacts are modelled as a tagged
union discriminated by ``kind`` (which always equals the artifact key), so a
session's data can be validated on load and each stage's consumer can rely on
the declared shape.

All fields carry defaults: a model response that omits a field still yields a
complete artifact, and stage fallbacks only need to set what differs from the
empty value.

Artifact keys:
    problem_statement, problem_conversation, market_research, root_cause,
    existing_solutions, icp, use_case, product_requirements, prioritization,
    export, feedback
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Problem
# =============================================================================


class ProblemStatementArtifact(BaseModel):
    kind: Literal["problem_statement"] = "problem_statement"
    original: str = ""
    refined: str = ""
    ai_suggestions: List[str] = Field(default_factory=list)
    clarifying_questions: List[str] = Field(default_factory=list)


class ConversationExchange(BaseModel):
    question: str
    answer: str


class ProblemConversationArtifact(BaseModel):
    """Clarifying questions asked while refining the problem."""

    kind: Literal["problem_conversation"] = "problem_conversation"
    original: str = ""
    exchanges: List[ConversationExchange] = Field(default_factory=list)
    is_complete: bool = False


# =============================================================================
# Market research
# =============================================================================


class MarketReference(BaseModel):
    source: str = ""
    title: str = ""
    relevance: str = ""


class MarketFindings(BaseModel):
    market_size: str = ""
    competitors: List[str] = Field(default_factory=list)
    trends: List[str] = Field(default_factory=list)
    references: List[MarketReference] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("confidence", mode="before")
    @classmethod
    def percent_to_fraction(cls, v):
        # Models sometimes answer 70 instead of 0.7
        if isinstance(v, (int, float)) and 1 < v <= 100:
            return v / 100
        return v


class MarketResearchArtifact(BaseModel):
    kind: Literal["market_research"] = "market_research"
    permission: bool = False
    existing_data: str = ""
    findings: MarketFindings = Field(default_factory=MarketFindings)


# =============================================================================
# Root cause
# =============================================================================


class WhyLevel(BaseModel):
    level: int = Field(ge=1)
    question: str = ""
    answer: str = ""


class RootCauseArtifact(BaseModel):
    kind: Literal["root_cause"] = "root_cause"
    causes: List[WhyLevel] = Field(default_factory=list)
    primary_cause: str = ""


# =============================================================================
# Existing solutions
# =============================================================================


class Solution(BaseModel):
    name: str
    description: str = ""
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)
    pricing: str = ""
    target_audience: str = ""
    disclaimer: str = ""
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)


class ExistingSolutionsArtifact(BaseModel):
    kind: Literal["existing_solutions"] = "existing_solutions"
    solutions: List[Solution] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)


# =============================================================================
# Ideal customer profile
# =============================================================================


class Demographics(BaseModel):
    age: str = ""
    job_role: str = ""
    income: str = ""
    location: str = ""


class Psychographics(BaseModel):
    goals: List[str] = Field(default_factory=list)
    frustrations: List[str] = Field(default_factory=list)
    values: List[str] = Field(default_factory=list)


class CustomerProfile(BaseModel):
    name: str
    description: str = ""
    demographics: Demographics = Field(default_factory=Demographics)
    psychographics: Psychographics = Field(default_factory=Psychographics)


class IcpArtifact(BaseModel):
    kind: Literal["icp"] = "icp"
    profiles: List[CustomerProfile] = Field(default_factory=list)


# =============================================================================
# Use case
# =============================================================================


class UseCaseStep(BaseModel):
    step: int = Field(ge=1)
    action: str = ""
    outcome: str = ""


class UseCaseArtifact(BaseModel):
    kind: Literal["use_case"] = "use_case"
    narrative: str = ""
    steps: List[UseCaseStep] = Field(default_factory=list)


# =============================================================================
# Requirements
# =============================================================================


class Requirement(BaseModel):
    id: str = ""
    name: str
    description: str = ""
    category: str = ""  # non-functional only (performance, security, ...)
    acceptance_criteria: List[str] = Field(default_factory=list)


class ProductRequirementsArtifact(BaseModel):
    kind: Literal["product_requirements"] = "product_requirements"
    functional_requirements: List[Requirement] = Field(default_factory=list)
    non_functional_requirements: List[Requirement] = Field(default_factory=list)


# =============================================================================
# Prioritization
# =============================================================================


class PrioritizationMethod(str, Enum):
    RICE = "RICE"
    ICE = "ICE"
    MOSCOW = "MoSCoW"


class Priority(str, Enum):
    MUST_HAVE = "must-have"
    SHOULD_HAVE = "should-have"
    COULD_HAVE = "could-have"
    WONT_HAVE = "wont-have"


class Feature(BaseModel):
    name: str
    description: str = ""
    reach: Optional[float] = None
    impact: Optional[float] = None
    confidence: Optional[float] = None
    effort: Optional[float] = None
    ease: Optional[float] = None
    score: Optional[float] = None
    priority: Optional[Priority] = None


class PrioritizationArtifact(BaseModel):
    kind: Literal["prioritization"] = "prioritization"
    method: PrioritizationMethod = PrioritizationMethod.RICE
    features: List[Feature] = Field(default_factory=list)


# =============================================================================
# Export / feedback (user-produced, no model call)
# =============================================================================


class ExportArtifact(BaseModel):
    kind: Literal["export"] = "export"
    format: Literal["markdown", "json"] = "markdown"
    filename: str = ""
    exported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FeedbackArtifact(BaseModel):
    kind: Literal["feedback"] = "feedback"
    rating: int = Field(default=0, ge=0, le=5)
    helpfulness: int = Field(default=0, ge=0, le=5)
    improvements: str = ""
    most_valuable: str = ""
    would_recommend: str = ""
    recommendation_reason: str = ""


StageArtifact = Annotated[
    Union[
        ProblemStatementArtifact,
        ProblemConversationArtifact,
        MarketResearchArtifact,
        RootCauseArtifact,
        ExistingSolutionsArtifact,
        IcpArtifact,
        UseCaseArtifact,
        ProductRequirementsArtifact,
        PrioritizationArtifact,
        ExportArtifact,
        FeedbackArtifact,
    ],
    Field(discriminator="kind"),
]

# Artifact key -> model
ARTIFACT_MODELS: Dict[str, Type[BaseModel]] = {
    "problem_statement": ProblemStatementArtifact,
    "problem_conversation": ProblemConversationArtifact,
    "market_research": MarketResearchArtifact,
    "root_cause": RootCauseArtifact,
    "existing_solutions": ExistingSolutionsArtifact,
    "icp": IcpArtifact,
    "use_case": UseCaseArtifact,
    "product_requirements": ProductRequirementsArtifact,
    "prioritization": PrioritizationArtifact,
    "export": ExportArtifact,
    "feedback": FeedbackArtifact,
}
