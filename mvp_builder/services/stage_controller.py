"""
Stage controller: the wizard's state machine.

States are the ten catalog stages; ``feedback`` is terminal. Transitions:
    - complete_stage: strictly forward, one stage at a time (clamped at the end)
    - go_to_step: jump anywhere, no prerequisite check
    - reset_to_step: jump and forget completion of the target and later stages

Stage artifacts are produced by run_stage(), which validates the founder's
input, asks the AI gateway for an artifact and materialises the stage default
when generation fails. Completing a stage that is not the current stage is a
stale write: it is logged and ignored.

Reset keeps stored artifacts. Revisiting a stage shows the previous artifact
until it is regenerated.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
import uuid

import httpx
import structlog
from pydantic import BaseModel

from mvp_builder.core.config import wizard_config
from mvp_builder.core.exceptions import (
    LLMError,
    SessionExistsError,
    SessionNotFoundError,
    ValidationError,
)
from mvp_builder.domain.models.artifacts import (
    ARTIFACT_MODELS,
    ConversationExchange,
    ExportArtifact,
    FeedbackArtifact,
    ProblemConversationArtifact,
    ProblemStatementArtifact,
)
from mvp_builder.domain.models.feedback import Feedback
from mvp_builder.domain.models.session import ConversationMessage, Session
from mvp_builder.llm.prompts.problem_conversation import (
    get_conversation_system_prompt,
    get_conversation_user_prompt,
    get_refinement_system_prompt,
    get_refinement_user_prompt,
    parse_conversation_response,
)
from mvp_builder.services.ai_gateway import AIGateway, GenerationError
from mvp_builder.services.artifacts import (
    fallback_artifact,
    parse_input_features,
    permission_granted,
    user_artifact,
)
from mvp_builder.services.protocols import IFeedbackStore, ISessionStore
from mvp_builder.stages.catalog import (
    Stage,
    build_stage_context,
    get_stage_def,
    validate_attempt,
)

log = structlog.get_logger(__name__)


def parse_artifacts(data: Mapping[str, Any]) -> Dict[str, BaseModel]:
    """Validate raw artifact dicts keyed by artifact key.

    Raises:
        ValidationError: unknown artifact key or malformed artifact
    """
    artifacts: Dict[str, BaseModel] = {}
    for key, value in data.items():
        model = ARTIFACT_MODELS.get(key)
        if model is None:
            raise ValidationError(f"Unknown artifact key: {key}", [key])
        payload = value.model_dump() if isinstance(value, BaseModel) else dict(value)
        try:
            artifacts[key] = model.model_validate({**payload, "kind": key})
        except ValueError as e:
            raise ValidationError(f"Invalid {key} artifact", [str(e)]) from e
    return artifacts


@dataclass
class StageRun:
    """Result of running one stage."""

    session: Session
    artifact: Optional[BaseModel]
    used_fallback: bool = False
    error: Optional[GenerationError] = None
    applied: bool = True  # False when the request targeted a stale stage


@dataclass
class ConversationTurn:
    session: Session
    next_question: Optional[str]
    refined_problem: Optional[str]
    is_complete: bool
    used_fallback: bool = False


class StageController:
    """Mediates between founder input, the AI gateway and the session store."""

    def __init__(
        self,
        sessions: ISessionStore,
        gateway: AIGateway,
        feedback: Optional[IFeedbackStore] = None,
        max_conversation_answers: Optional[int] = None,
    ):
        self.sessions = sessions
        self.gateway = gateway
        self.feedback = feedback
        self.max_conversation_answers = (
            max_conversation_answers or wizard_config.conversation.max_answers
        )

    # ==========================================================================
    # Session access
    # ==========================================================================

    async def create_session(self, session_id: Optional[str] = None) -> Tuple[Session, bool]:
        """Create a session, or return the existing one for a known id.

        Returns:
            (session, created)
        """
        session_id = session_id or str(uuid.uuid4())
        existing = await self.sessions.get(session_id)
        if existing:
            return existing, False
        try:
            session = await self.sessions.create(Session(session_id=session_id))
        except SessionExistsError:
            # Created concurrently by another request
            return await self.get_session(session_id), False
        return session, True

    async def get_session(self, session_id: str) -> Session:
        """
        Raises:
            SessionNotFoundError: unknown session id
        """
        session = await self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    async def list_sessions(self, limit: int = 100) -> List[Session]:
        return await self.sessions.list(limit=limit)

    async def update_session(
        self,
        session_id: str,
        current_stage: Optional[Stage] = None,
        completed_stages: Optional[List[Stage]] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> Session:
        """Apply a partial update (stage / completed stages / data entries).

        Data entries are validated against their artifact model and merged
        key by key.

        Raises:
            SessionNotFoundError: unknown session id
            ValidationError: unknown artifact key or malformed artifact
        """
        session = await self.get_session(session_id)
        if current_stage is not None:
            session.current_stage = current_stage
        if completed_stages is not None:
            session.completed_stages = list(dict.fromkeys(completed_stages))
        session.data.update(parse_artifacts(data or {}))
        await self.sessions.save(session)
        log.info("session_updated", session_id=session_id, fields=sorted((data or {}).keys()))
        return session

    # ==========================================================================
    # Transitions
    # ==========================================================================

    async def complete_stage(
        self, session: Session, stage: Stage, output: Mapping[str, BaseModel]
    ) -> Session:
        """Record `output` for `stage` and advance to the next stage.

        A completion for any stage other than the current one is stale and
        leaves the session untouched.
        """
        if stage != session.current_stage:
            log.warning(
                "stale_stage_completion",
                session_id=session.session_id,
                stage=stage.value,
                current_stage=session.current_stage.value,
            )
            return session

        session.data.update(output)
        if stage not in session.completed_stages:
            session.completed_stages.append(stage)
        session.current_stage = stage.next()
        await self.sessions.save(session)

        log.info(
            "stage_completed",
            session_id=session.session_id,
            stage=stage.value,
            next_stage=session.current_stage.value,
        )
        return session

    async def go_to_step(self, session: Session, stage: Stage) -> Session:
        """Move to any stage without checking prerequisites."""
        previous = session.current_stage
        session.current_stage = stage
        await self.sessions.save(session)
        log.info(
            "stage_navigated",
            session_id=session.session_id,
            from_stage=previous.value,
            to_stage=stage.value,
        )
        return session

    async def reset_to_step(self, session: Session, stage: Stage) -> Session:
        """Move to `stage` and drop completion of it and every later stage.

        Artifacts in ``data`` are kept.
        """
        kept = [s for s in session.completed_stages if s.position < stage.position]
        dropped = [s.value for s in session.completed_stages if s.position >= stage.position]
        session.completed_stages = kept
        session.current_stage = stage
        await self.sessions.save(session)
        log.info(
            "stage_reset",
            session_id=session.session_id,
            stage=stage.value,
            dropped=dropped,
        )
        return session

    # ==========================================================================
    # Stage execution
    # ==========================================================================

    async def run_stage(
        self, session_id: str, stage: Stage, user_input: Mapping[str, Any]
    ) -> StageRun:
        """Validate input, produce the stage artifact and complete the stage.

        Raises:
            SessionNotFoundError: unknown session id
            ValidationError: input is missing required fields, too short, or
                lists malformed features
        """
        session = await self.get_session(session_id)
        stage_def = get_stage_def(stage)

        errors = validate_attempt(stage_def, user_input)
        if errors:
            raise ValidationError(f"Invalid input for {stage_def.title}", errors)
        if stage == Stage.PRIORITIZATION:
            # Features back the fallback too, so reject malformed ones up front
            parse_input_features(user_input)

        if stage != session.current_stage:
            log.warning(
                "stale_stage_request",
                session_id=session_id,
                stage=stage.value,
                current_stage=session.current_stage.value,
            )
            return StageRun(
                session=session,
                artifact=session.data.get(stage_def.artifact_key),
                applied=False,
            )

        error: Optional[GenerationError] = None
        if not stage_def.ai_generated or self._skip_generation(stage, user_input):
            artifact = user_artifact(stage, user_input)
        else:
            context = build_stage_context(stage, session.data)
            result = await self.gateway.generate_artifact(stage, user_input, context)
            if result.ok:
                artifact = result.artifact
            else:
                error = result.error
                artifact = fallback_artifact(stage, user_input)
                log.warning(
                    "artifact_fallback",
                    session_id=session_id,
                    stage=stage.value,
                    error_kind=error.kind,
                )

        if stage == Stage.PROBLEM_DISCOVERY:
            self._record_problem_messages(session, artifact)

        session = await self.complete_stage(
            session, stage, {stage_def.artifact_key: artifact}
        )
        return StageRun(
            session=session,
            artifact=artifact,
            used_fallback=error is not None,
            error=error,
        )

    @staticmethod
    def _skip_generation(stage: Stage, user_input: Mapping[str, Any]) -> bool:
        # Market research needs the founder's permission to call the model
        if stage != Stage.MARKET_RESEARCH:
            return False
        return not permission_granted(user_input)

    @staticmethod
    def _record_problem_messages(session: Session, artifact: BaseModel) -> None:
        if not isinstance(artifact, ProblemStatementArtifact):
            return
        session.conversation_history.append(
            ConversationMessage(
                role="user", content=artifact.original, stage=Stage.PROBLEM_DISCOVERY
            )
        )
        session.conversation_history.append(
            ConversationMessage(
                role="assistant", content=artifact.refined, stage=Stage.PROBLEM_DISCOVERY
            )
        )

    # ==========================================================================
    # Problem conversation
    # ==========================================================================

    async def continue_problem_conversation(
        self,
        session_id: str,
        question: str,
        answer: str,
        original_problem: str,
    ) -> ConversationTurn:
        """Record one clarifying Q/A and decide whether the problem is refined.

        The conversation is forced to a conclusion once the configured number
        of answers has been collected. On completion the refined problem is
        stored and the problem stage is completed.

        Raises:
            SessionNotFoundError: unknown session id
            ValidationError: empty answer
        """
        if not answer.strip():
            raise ValidationError("Answer is required", ["Answer is required"])

        session = await self.get_session(session_id)
        conversation = session.data.get("problem_conversation")
        # A finished conversation or a different problem starts a new one
        if (
            not isinstance(conversation, ProblemConversationArtifact)
            or conversation.is_complete
            or conversation.original != original_problem
        ):
            conversation = ProblemConversationArtifact(original=original_problem)
        conversation.exchanges.append(
            ConversationExchange(question=question, answer=answer)
        )
        session.data["problem_conversation"] = conversation
        session.conversation_history.extend(
            [
                ConversationMessage(
                    role="assistant", content=question, stage=Stage.PROBLEM_DISCOVERY
                ),
                ConversationMessage(
                    role="user", content=answer, stage=Stage.PROBLEM_DISCOVERY
                ),
            ]
        )

        exchanges = [(e.question, e.answer) for e in conversation.exchanges]
        next_question: Optional[str] = None
        refined: Optional[str] = None
        used_fallback = False

        try:
            if len(exchanges) >= self.max_conversation_answers:
                log.info(
                    "conversation_forced_complete",
                    session_id=session_id,
                    answers=len(exchanges),
                )
                text = await self.gateway.complete_text(
                    get_refinement_user_prompt(original_problem, exchanges),
                    system=get_refinement_system_prompt(),
                    json_mode=False,
                )
                refined = text.strip().strip('"') or original_problem
            else:
                text = await self.gateway.complete_text(
                    get_conversation_user_prompt(original_problem, exchanges),
                    system=get_conversation_system_prompt(),
                    json_mode=True,
                )
                decision = parse_conversation_response(text)
                next_question = decision["next_question"]
                refined = decision["refined_problem"]
        except (ValueError, LLMError, httpx.HTTPError) as e:
            log.warning(
                "artifact_fallback",
                session_id=session_id,
                stage=Stage.PROBLEM_DISCOVERY.value,
                error_kind="conversation",
                error=str(e),
            )
            next_question, refined, used_fallback = None, original_problem, True

        is_complete = refined is not None
        if not is_complete:
            await self.sessions.save(session)
            return ConversationTurn(session, next_question, None, False)

        conversation.is_complete = True
        session.conversation_history.append(
            ConversationMessage(
                role="assistant", content=refined, stage=Stage.PROBLEM_DISCOVERY
            )
        )
        statement = ProblemStatementArtifact(original=original_problem, refined=refined)
        if session.current_stage == Stage.PROBLEM_DISCOVERY:
            session = await self.complete_stage(
                session, Stage.PROBLEM_DISCOVERY, {"problem_statement": statement}
            )
        else:
            session.data["problem_statement"] = statement
            await self.sessions.save(session)

        return ConversationTurn(session, None, refined, True, used_fallback)

    # ==========================================================================
    # Export / feedback
    # ==========================================================================

    async def record_export(self, session: Session, artifact: ExportArtifact) -> Session:
        """Store the export record. Exporting does not advance the stage."""
        session.data["export"] = artifact
        await self.sessions.save(session)
        log.info(
            "export_recorded",
            session_id=session.session_id,
            format=artifact.format,
            filename=artifact.filename,
        )
        return session

    async def submit_feedback(self, session_id: str, feedback: Feedback) -> Feedback:
        """Store feedback and complete the feedback stage when it is current.

        Raises:
            SessionNotFoundError: unknown session id
        """
        session = await self.get_session(session_id)
        stored = feedback
        if self.feedback is not None:
            stored = await self.feedback.create(feedback)

        artifact = FeedbackArtifact(
            **feedback.model_dump(
                include={
                    "rating",
                    "helpfulness",
                    "improvements",
                    "most_valuable",
                    "would_recommend",
                    "recommendation_reason",
                }
            )
        )
        if session.current_stage == Stage.FEEDBACK:
            await self.complete_stage(session, Stage.FEEDBACK, {"feedback": artifact})
        else:
            session.data["feedback"] = artifact
            await self.sessions.save(session)
        return stored
