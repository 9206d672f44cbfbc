"""
Storage protocol definitions (interfaces).

Services depend on these structural types rather than on a concrete backend,
so the SQLite repositories and the in-memory stores are interchangeable.
"""

from typing import List, Optional, Protocol

from mvp_builder.domain.models.customer import Customer
from mvp_builder.domain.models.feedback import Feedback
from mvp_builder.domain.models.session import Session


class ISessionStore(Protocol):
    """Key-value session storage keyed by session id."""

    async def create(self, session: Session) -> Session:
        """Store a new session. Raises SessionExistsError on duplicate ids."""
        ...

    async def get(self, session_id: str) -> Optional[Session]: ...

    async def save(self, session: Session) -> Session:
        """Persist the whole session (last write wins)."""
        ...

    async def list(self, limit: int = 100) -> List[Session]: ...


class ICustomerStore(Protocol):
    async def create(self, customer: Customer) -> Customer: ...

    async def get(self, customer_id: str) -> Optional[Customer]: ...

    async def list(self) -> List[Customer]: ...

    async def save(self, customer: Customer) -> Customer: ...

    async def delete(self, customer_id: str) -> bool: ...


class IFeedbackStore(Protocol):
    async def create(self, feedback: Feedback) -> Feedback: ...

    async def list(self, session_id: Optional[str] = None) -> List[Feedback]: ...
