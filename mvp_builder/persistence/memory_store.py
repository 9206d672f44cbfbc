"""In-memory repositories.

Used when no DATABASE_PATH is configured. They mirror the SQLite repositories
method for method, so services never know which backend they are talking to.
Stored models are deep-copied on the way in and out so callers cannot mutate
the store by accident. Contents are lost when the process exits.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog

from mvp_builder.core.exceptions import CustomerExistsError, SessionExistsError
from mvp_builder.domain.models.customer import Customer
from mvp_builder.domain.models.feedback import Feedback
from mvp_builder.domain.models.session import Session

log = structlog.get_logger(__name__)


class InMemorySessionRepository:
    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    async def create(self, session: Session) -> Session:
        if session.session_id in self._sessions:
            raise SessionExistsError(f"Session {session.session_id} already exists")
        self._sessions[session.session_id] = session.model_copy(deep=True)
        log.info("session_created", session_id=session.session_id, store="memory")
        return session

    async def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def save(self, session: Session) -> Session:
        session.touch()
        self._sessions[session.session_id] = session.model_copy(deep=True)
        return session

    async def list(self, limit: int = 100) -> List[Session]:
        newest = sorted(
            self._sessions.values(), key=lambda s: s.created_at, reverse=True
        )
        return [s.model_copy(deep=True) for s in newest[:limit]]


class InMemoryCustomerRepository:
    def __init__(self):
        self._customers: Dict[str, Customer] = {}

    async def create(self, customer: Customer) -> Customer:
        if customer.customer_id in self._customers:
            raise CustomerExistsError(f"Customer {customer.customer_id} already exists")
        now = datetime.now(timezone.utc)
        customer = customer.model_copy(
            update={"created_at": customer.created_at or now, "updated_at": now}
        )
        self._customers[customer.customer_id] = customer
        log.info("customer_created", customer_id=customer.customer_id, store="memory")
        return customer.model_copy()

    async def get(self, customer_id: str) -> Optional[Customer]:
        customer = self._customers.get(customer_id)
        return customer.model_copy() if customer else None

    async def list(self) -> List[Customer]:
        return sorted(
            (c.model_copy() for c in self._customers.values()),
            key=lambda c: c.created_at or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )

    async def save(self, customer: Customer) -> Customer:
        customer = customer.model_copy(
            update={"updated_at": datetime.now(timezone.utc)}
        )
        self._customers[customer.customer_id] = customer
        return customer.model_copy()

    async def delete(self, customer_id: str) -> bool:
        return self._customers.pop(customer_id, None) is not None


class InMemoryFeedbackRepository:
    def __init__(self):
        self._rows: List[Feedback] = []

    async def create(self, feedback: Feedback) -> Feedback:
        stored = feedback.model_copy(
            update={
                "id": len(self._rows) + 1,
                "created_at": feedback.created_at or datetime.now(timezone.utc),
            }
        )
        self._rows.append(stored)
        log.info(
            "feedback_stored",
            feedback_id=stored.id,
            session_id=stored.session_id,
            rating=stored.rating,
            store="memory",
        )
        return stored.model_copy()

    async def list(self, session_id: Optional[str] = None) -> List[Feedback]:
        rows = [
            r for r in self._rows if session_id is None or r.session_id == session_id
        ]
        return [r.model_copy() for r in reversed(rows)]
