"""
API request/response schemas.

Separate from domain models to allow API evolution.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from mvp_builder.domain.models.session import ConversationMessage, Session
from mvp_builder.services.access_gate import AccessDecision
from mvp_builder.services.stage_controller import ConversationTurn, StageRun
from mvp_builder.stages.catalog import FieldDef, RubricCriterion, Stage, StageDef

StageRef = Union[str, int]


# ============ SESSION SCHEMAS ============


class SessionCreate(BaseModel):
    """Request to create (or resume) a session."""

    session_id: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=128,
        description="Client-generated id; generated server-side when omitted",
    )


class SessionResponse(BaseModel):
    """Full session state."""

    session_id: str
    current_stage: Stage
    current_position: int
    completed_stages: List[Stage]
    progress: float
    data: Dict[str, Any]
    conversation_history: List[ConversationMessage]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            session_id=session.session_id,
            current_stage=session.current_stage,
            current_position=session.current_stage.position,
            completed_stages=session.completed_stages,
            progress=session.progress,
            data={
                key: artifact.model_dump(mode="json")
                for key, artifact in session.data.items()
            },
            conversation_history=session.conversation_history,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class SessionSummary(BaseModel):
    session_id: str
    current_stage: Stage
    completed_count: int
    created_at: datetime
    updated_at: datetime


class SessionListResponse(BaseModel):
    sessions: List[SessionSummary]
    total: int


class SessionPatch(BaseModel):
    """Partial session update."""

    current_stage: Optional[StageRef] = None
    completed_stages: Optional[List[StageRef]] = None
    data: Optional[Dict[str, Dict[str, Any]]] = Field(
        default=None, description="Artifact key -> artifact fields"
    )


class StageCompleteRequest(BaseModel):
    """Complete the current stage with client-produced output."""

    stage: StageRef
    data: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, description="Artifact key -> artifact fields"
    )


class StageMoveRequest(BaseModel):
    """Target stage for navigate / reset (id, alias or 1-based position)."""

    stage: StageRef


# ============ STAGE RUN SCHEMAS ============


class GenerationErrorSchema(BaseModel):
    kind: str
    message: str


class StageRunResponse(BaseModel):
    stage: Stage
    artifact: Optional[Dict[str, Any]]
    used_fallback: bool
    error: Optional[GenerationErrorSchema] = None
    applied: bool
    session: SessionResponse

    @classmethod
    def from_run(cls, stage: Stage, run: StageRun) -> "StageRunResponse":
        return cls(
            stage=stage,
            artifact=run.artifact.model_dump(mode="json") if run.artifact else None,
            used_fallback=run.used_fallback,
            error=GenerationErrorSchema(kind=run.error.kind, message=run.error.message)
            if run.error
            else None,
            applied=run.applied,
            session=SessionResponse.from_session(run.session),
        )


class ConversationRequest(BaseModel):
    question: str = Field(min_length=1)
    answer: str
    original_problem: str = Field(min_length=1)


class ConversationResponse(BaseModel):
    next_question: Optional[str]
    refined_problem: Optional[str]
    is_complete: bool
    used_fallback: bool
    session: SessionResponse

    @classmethod
    def from_turn(cls, turn: ConversationTurn) -> "ConversationResponse":
        return cls(
            next_question=turn.next_question,
            refined_problem=turn.refined_problem,
            is_complete=turn.is_complete,
            used_fallback=turn.used_fallback,
            session=SessionResponse.from_session(turn.session),
        )


# ============ EXPORT / FEEDBACK SCHEMAS ============


class ExportRequest(BaseModel):
    format: str = Field(default="markdown", description="markdown or json")


class ExportResponse(BaseModel):
    download_url: str
    filename: str
    format: str


class FeedbackRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    helpfulness: int = Field(ge=1, le=5)
    improvements: str = ""
    most_valuable: str = ""
    would_recommend: Literal["yes", "no", "maybe", ""] = ""
    recommendation_reason: str = ""


# ============ CATALOG SCHEMAS ============


class StageSummaryResponse(BaseModel):
    id: Stage
    position: int
    title: str
    concept: str
    example_good: str
    example_bad: str
    artifact_key: str
    ai_generated: bool
    required_fields: List[FieldDef]
    rubric: List[RubricCriterion]
    depends_on: List[Stage]

    @classmethod
    def from_def(cls, stage_def: StageDef) -> "StageSummaryResponse":
        return cls(**stage_def.model_dump(exclude={"output_spec", "instructions"}))


# ============ CUSTOMER / ACCESS SCHEMAS ============


class CustomerCreate(BaseModel):
    customer_id: str = Field(min_length=1)
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    subscription_id: Optional[str] = None
    subscription_status: Optional[str] = None
    subscription_interval: Optional[str] = None
    plan_name: Optional[str] = None
    subscribe_plan_name: Optional[str] = None
    subscription_plan_price: Optional[float] = None
    actual_attempts: Optional[int] = Field(default=None, ge=0)
    used_attempt: Optional[int] = Field(default=None, ge=0)


class AccessResponse(BaseModel):
    state: str
    allowed: bool
    title: str
    message: str
    banner: Optional[str]
    remaining_attempts: Optional[int]

    @classmethod
    def from_decision(cls, decision: AccessDecision) -> "AccessResponse":
        return cls(
            state=decision.state.value,
            allowed=decision.allowed,
            title=decision.title,
            message=decision.message,
            banner=decision.banner,
            remaining_attempts=decision.remaining_attempts,
        )
