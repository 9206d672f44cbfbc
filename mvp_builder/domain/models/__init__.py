"""Domain models package."""

from .artifacts import ARTIFACT_MODELS, StageArtifact
from .session import Session, ConversationMessage
from .customer import Customer, CustomerUpdate, SubscriptionStatus
from .feedback import Feedback

__all__ = [
    "ARTIFACT_MODELS",
    "StageArtifact",
    "Session",
    "ConversationMessage",
    "Customer",
    "CustomerUpdate",
    "SubscriptionStatus",
    "Feedback",
]
