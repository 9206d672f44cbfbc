"""Session domain model for wizard progress.

A session is created lazily the first time a client shows up with a locally
generated id. Stage completion advances ``current_stage`` and records the stage
in ``completed_stages``; artifacts accumulate in ``data`` under their artifact
key. Sessions are never deleted automatically.

Invariants:
    - current_stage is always a catalog stage (enforced by the Stage enum)
    - completed_stages holds no duplicates and keeps first-completion order
"""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from mvp_builder.domain.models.artifacts import StageArtifact
from mvp_builder.stages.catalog import Stage


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationMessage(BaseModel):
    """One transcript entry. The history is append-only."""

    role: Literal["user", "assistant"]
    content: str
    stage: Optional[Stage] = None
    created_at: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    """Wizard session aggregate."""

    session_id: str
    current_stage: Stage = Field(default_factory=Stage.first)
    completed_stages: List[Stage] = Field(default_factory=list)
    data: Dict[str, StageArtifact] = Field(default_factory=dict)
    conversation_history: List[ConversationMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("completed_stages")
    @classmethod
    def dedupe_completed(cls, v: List[Stage]) -> List[Stage]:
        seen: List[Stage] = []
        for stage in v:
            if stage not in seen:
                seen.append(stage)
        return seen

    def is_completed(self, stage: Stage) -> bool:
        return stage in self.completed_stages

    @property
    def progress(self) -> float:
        """Fraction of stages completed (0.0-1.0)."""
        return len(self.completed_stages) / len(Stage.ordered())

    def touch(self) -> None:
        self.updated_at = utcnow()
