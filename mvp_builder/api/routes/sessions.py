"""
Session API routes.

Endpoints for session management, stage transitions and artifact generation.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, HTTPException, Query, Response, status
import structlog

from mvp_builder.api.dependencies import ExportServiceDep, StageControllerDep
from mvp_builder.api.schemas import (
    ConversationRequest,
    ConversationResponse,
    ExportRequest,
    ExportResponse,
    FeedbackRequest,
    SessionCreate,
    SessionListResponse,
    SessionPatch,
    SessionResponse,
    SessionSummary,
    StageCompleteRequest,
    StageMoveRequest,
    StageRunResponse,
)
from mvp_builder.domain.models.feedback import Feedback
from mvp_builder.domain.models.artifacts import ProblemStatementArtifact
from mvp_builder.services.stage_controller import parse_artifacts
from mvp_builder.services.visualization import Graph, project_stage
from mvp_builder.stages.catalog import Stage, get_stage_def

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])

# URL segment -> stage for the generation endpoints
STAGE_ROUTES: Dict[str, Stage] = {
    "problem-analysis": Stage.PROBLEM_DISCOVERY,
    "market-research": Stage.MARKET_RESEARCH,
    "root-cause": Stage.ROOT_CAUSE_ANALYSIS,
    "existing-solutions": Stage.EXISTING_SOLUTIONS,
    "icp": Stage.CUSTOMER_PROFILE,
    "use-case": Stage.USE_CASE_DEFINITION,
    "requirements": Stage.PRODUCT_REQUIREMENTS,
    "prioritization": Stage.PRIORITIZATION,
}


# ============ SESSION CRUD ============


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    controller: StageControllerDep,
    response: Response,
    request: Optional[SessionCreate] = None,
):
    """Create a session, or return the stored one when the id already exists.

    Returns 201 for a new session and 200 when resuming.
    """
    session_id = request.session_id if request else None
    session, created = await controller.create_session(session_id)

    if created:
        log.info("session_created", session_id=session.session_id)
    else:
        response.status_code = status.HTTP_200_OK
        log.info("session_resumed", session_id=session.session_id)

    return SessionResponse.from_session(session)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    controller: StageControllerDep,
    limit: int = Query(default=100, ge=1, le=1000),
):
    """List sessions, newest first."""
    sessions = await controller.list_sessions(limit=limit)
    summaries = [
        SessionSummary(
            session_id=s.session_id,
            current_stage=s.current_stage,
            completed_count=len(s.completed_stages),
            created_at=s.created_at,
            updated_at=s.updated_at,
        )
        for s in sessions
    ]
    return SessionListResponse(sessions=summaries, total=len(summaries))


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, controller: StageControllerDep):
    """Get the full session state.

    Raises:
        SessionNotFoundError: mapped to 404
    """
    return SessionResponse.from_session(await controller.get_session(session_id))


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: str,
    request: SessionPatch,
    controller: StageControllerDep,
):
    """Partial update of current stage, completed stages and artifacts."""
    session = await controller.update_session(
        session_id,
        current_stage=Stage.parse(request.current_stage)
        if request.current_stage is not None
        else None,
        completed_stages=[Stage.parse(s) for s in request.completed_stages]
        if request.completed_stages is not None
        else None,
        data=request.data,
    )
    return SessionResponse.from_session(session)


# ============ TRANSITIONS ============


@router.post("/{session_id}/complete", response_model=SessionResponse)
async def complete_stage(
    session_id: str,
    request: StageCompleteRequest,
    controller: StageControllerDep,
):
    """Complete `stage` with client-produced artifacts.

    A completion for a stage other than the current one is ignored and the
    session is returned unchanged.
    """
    stage = Stage.parse(request.stage)
    output = parse_artifacts(request.data)
    session = await controller.get_session(session_id)
    session = await controller.complete_stage(session, stage, output)
    return SessionResponse.from_session(session)


@router.post("/{session_id}/navigate", response_model=SessionResponse)
async def navigate(
    session_id: str,
    request: StageMoveRequest,
    controller: StageControllerDep,
):
    """Jump to any stage without prerequisite checks."""
    session = await controller.get_session(session_id)
    session = await controller.go_to_step(session, Stage.parse(request.stage))
    return SessionResponse.from_session(session)


@router.post("/{session_id}/reset", response_model=SessionResponse)
async def reset(
    session_id: str,
    request: StageMoveRequest,
    controller: StageControllerDep,
):
    """Jump to a stage and forget completion of it and every later stage."""
    session = await controller.get_session(session_id)
    session = await controller.reset_to_step(session, Stage.parse(request.stage))
    return SessionResponse.from_session(session)


# ============ STAGE GENERATION ============


def _stage_endpoint(stage: Stage):
    async def run(
        session_id: str,
        controller: StageControllerDep,
        payload: Optional[Dict[str, Any]] = Body(default=None),
    ) -> StageRunResponse:
        run = await controller.run_stage(session_id, stage, payload or {})
        return StageRunResponse.from_run(stage, run)

    run.__doc__ = f"Validate input and produce the {get_stage_def(stage).title} artifact."
    return run


for _segment, _stage in STAGE_ROUTES.items():
    router.add_api_route(
        f"/{{session_id}}/{_segment}",
        _stage_endpoint(_stage),
        methods=["POST"],
        response_model=StageRunResponse,
        name=f"run_{_stage.name.lower()}",
    )


@router.post("/{session_id}/problem-conversation", response_model=ConversationResponse)
async def problem_conversation(
    session_id: str,
    request: ConversationRequest,
    controller: StageControllerDep,
):
    """Answer one clarifying question about the problem.

    Returns either the next question or the refined problem statement.
    """
    turn = await controller.continue_problem_conversation(
        session_id,
        question=request.question,
        answer=request.answer,
        original_problem=request.original_problem,
    )
    return ConversationResponse.from_turn(turn)


# ============ EXPORT / FEEDBACK ============


@router.post("/{session_id}/export", response_model=ExportResponse)
async def export_session(
    session_id: str,
    controller: StageControllerDep,
    exporter: ExportServiceDep,
    request: Optional[ExportRequest] = None,
):
    """Write the MVP document and return its download URL.

    Raises:
        ValidationError: unsupported format (400)
    """
    request = request or ExportRequest()
    session = await controller.get_session(session_id)
    artifact, _ = exporter.export_session(session, request.format)
    await controller.record_export(session, artifact)

    return ExportResponse(
        download_url=f"/api/exports/{artifact.filename}",
        filename=artifact.filename,
        format=artifact.format,
    )


@router.post(
    "/{session_id}/feedback",
    response_model=Feedback,
    status_code=status.HTTP_201_CREATED,
)
async def submit_feedback(
    session_id: str,
    request: FeedbackRequest,
    controller: StageControllerDep,
):
    """Store feedback for the session and complete the feedback stage."""
    feedback = Feedback(session_id=session_id, **request.model_dump())
    return await controller.submit_feedback(session_id, feedback)


# ============ GRAPHS ============


@router.get("/{session_id}/graphs/{stage_id}", response_model=Graph)
async def get_stage_graph(
    session_id: str,
    stage_id: str,
    controller: StageControllerDep,
):
    """Node/edge projection of a stage artifact for diagram widgets."""
    stage = Stage.parse(stage_id)
    session = await controller.get_session(session_id)
    artifact = session.data.get(get_stage_def(stage).artifact_key)
    if artifact is None:
        raise HTTPException(
            status_code=404, detail=f"No {stage.value} artifact for session {session_id}"
        )

    problem = session.data.get("problem_statement")
    problem_text = problem.refined if isinstance(problem, ProblemStatementArtifact) else ""
    graph = project_stage(stage, artifact, problem=problem_text)
    if graph is None:
        raise HTTPException(status_code=404, detail=f"Stage {stage.value} has no diagram")
    return graph

