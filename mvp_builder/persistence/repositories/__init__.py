"""Repository implementations."""

from mvp_builder.persistence.repositories.session_repo import SessionRepository
from mvp_builder.persistence.repositories.customer_repo import CustomerRepository
from mvp_builder.persistence.repositories.feedback_repo import FeedbackRepository

__all__ = [
    "SessionRepository",
    "CustomerRepository",
    "FeedbackRepository",
]
