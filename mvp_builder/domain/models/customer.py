"""Customer and subscription models.

Customers are owned by an external billing system; the wizard only reads them
and bumps the attempt counter when a founder starts a new session.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

FREE_PLAN_NAME = "Free"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Customer(BaseModel):
    """Customer record as stored by the wizard."""

    customer_id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    subscription_id: Optional[str] = None
    # Free-form: billing may send statuses the wizard does not know about
    subscription_status: str = SubscriptionStatus.ACTIVE.value
    subscription_interval: Optional[str] = None
    plan_name: str = ""
    subscribe_plan_name: Optional[str] = None
    subscription_plan_price: float = 0.0
    actual_attempts: int = Field(default=0, ge=0)
    used_attempt: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def remaining_attempts(self) -> int:
        return max(0, self.actual_attempts - self.used_attempt)

    @property
    def is_free_plan(self) -> bool:
        return self.plan_name == FREE_PLAN_NAME


class CustomerUpdate(BaseModel):
    """Partial customer update; unset fields are left untouched."""

    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    subscription_id: Optional[str] = None
    subscription_status: Optional[str] = None
    subscription_interval: Optional[str] = None
    plan_name: Optional[str] = None
    subscribe_plan_name: Optional[str] = None
    subscription_plan_price: Optional[float] = None
    actual_attempts: Optional[int] = Field(default=None, ge=0)
    used_attempt: Optional[int] = Field(default=None, ge=0)
