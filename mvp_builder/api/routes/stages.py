"""
Stage catalog endpoints.

The catalog is served without model output specs or prompt instructions.
"""

from typing import List

from fastapi import APIRouter

from mvp_builder.api.schemas import StageSummaryResponse
from mvp_builder.stages.catalog import get_stage_def, load_stage_catalog

router = APIRouter(prefix="/stages", tags=["stages"])


@router.get("", response_model=List[StageSummaryResponse])
async def list_stages():
    """All ten stages in wizard order."""
    return [StageSummaryResponse.from_def(d) for d in load_stage_catalog().values()]


@router.get("/{stage_id}", response_model=StageSummaryResponse)
async def get_stage(stage_id: str):
    """One stage by id, alias or 1-based position.

    Raises:
        UnknownStageError: mapped to 400 by the exception handlers
    """
    return StageSummaryResponse.from_def(get_stage_def(stage_id))
