# noqa
from mvp_builder.services.access_gate import AccessDecision, AccessGate, AccessState
from mvp_builder.services.ai_gateway import AIGateway, GenerationError, GenerationResult
from mvp_builder.services.export_service import ExportService
from mvp_builder.services.stage_controller import ConversationTurn, StageController, StageRun
from mvp_builder.services.subscription_service import SubscriptionService

__all__ = [
    "AccessDecision",
    "AccessGate",
    "AccessState",
    "AIGateway",
    "GenerationError",
    "GenerationResult",
    "ExportService",
    "ConversationTurn",
    "StageController",
    "StageRun",
    "SubscriptionService",
]
