"""Dependency injection for API routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from mvp_builder.core.config import settings, wizard_config
from mvp_builder.llm.client import LLMClient, get_llm_client
from mvp_builder.persistence.memory_store import (
    InMemoryCustomerRepository,
    InMemoryFeedbackRepository,
    InMemorySessionRepository,
)
from mvp_builder.persistence.repositories.customer_repo import CustomerRepository
from mvp_builder.persistence.repositories.feedback_repo import FeedbackRepository
from mvp_builder.persistence.repositories.session_repo import SessionRepository
from mvp_builder.services.access_gate import AccessGate
from mvp_builder.services.ai_gateway import AIGateway
from mvp_builder.services.export_service import ExportService
from mvp_builder.services.protocols import ICustomerStore, IFeedbackStore, ISessionStore
from mvp_builder.services.stage_controller import StageController
from mvp_builder.services.subscription_service import SubscriptionService


# In-memory stores live for the whole process
@lru_cache(maxsize=1)
def get_memory_session_store() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@lru_cache(maxsize=1)
def get_memory_customer_store() -> InMemoryCustomerRepository:
    return InMemoryCustomerRepository()


@lru_cache(maxsize=1)
def get_memory_feedback_store() -> InMemoryFeedbackRepository:
    return InMemoryFeedbackRepository()


def get_session_store() -> ISessionStore:
    """Session storage: SQLite when DATABASE_PATH is set, process memory otherwise."""
    if settings.database_path is None:
        return get_memory_session_store()
    return SessionRepository(str(settings.database_path))


def get_customer_store() -> ICustomerStore:
    if settings.database_path is None:
        return get_memory_customer_store()
    return CustomerRepository(str(settings.database_path))


def get_feedback_store() -> IFeedbackStore:
    if settings.database_path is None:
        return get_memory_feedback_store()
    return FeedbackRepository(str(settings.database_path))


@lru_cache(maxsize=1)
def get_shared_llm_client() -> LLMClient:
    """Cached LLM client, created once per process on first use.

    Raises:
        ValueError: OPENAI_API_KEY is not configured (not cached, so a key
            added later is picked up)
    """
    return get_llm_client()


def get_stage_controller(
    sessions: Annotated[ISessionStore, Depends(get_session_store)],
    feedback: Annotated[IFeedbackStore, Depends(get_feedback_store)],
) -> StageController:
    return StageController(
        sessions=sessions,
        gateway=AIGateway(client_factory=get_shared_llm_client),
        feedback=feedback,
    )


def get_subscription_service(
    customers: Annotated[ICustomerStore, Depends(get_customer_store)],
) -> SubscriptionService:
    return SubscriptionService(customers, free_plan=wizard_config.free_plan)


def get_access_gate() -> AccessGate:
    return AccessGate(wizard_config.access, environment=settings.environment)


def get_export_service() -> ExportService:
    return ExportService(settings.export_dir)


# Type aliases for dependency injection
SessionStoreDep = Annotated[ISessionStore, Depends(get_session_store)]
FeedbackStoreDep = Annotated[IFeedbackStore, Depends(get_feedback_store)]
StageControllerDep = Annotated[StageController, Depends(get_stage_controller)]
SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
AccessGateDep = Annotated[AccessGate, Depends(get_access_gate)]
ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]
