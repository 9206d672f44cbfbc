"""Customer subscription bookkeeping.

Customers without a paid subscription are put on the Free plan when they are
created. Each new wizard session consumes one attempt; once the attempts are
used up the subscription is marked expired.
"""

from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel

from mvp_builder.core.config import FreePlanConfig
from mvp_builder.core.exceptions import CustomerNotFoundError
from mvp_builder.domain.models.customer import (
    FREE_PLAN_NAME,
    Customer,
    CustomerUpdate,
    SubscriptionStatus,
)
from mvp_builder.services.protocols import ICustomerStore

log = structlog.get_logger(__name__)


class SubscriptionStatusView(BaseModel):
    status: str  # "active" | "inactive"
    remaining_attempts: int
    plan_name: str
    used_attempt: int
    actual_attempts: int


class AttemptResult(BaseModel):
    success: bool
    message: str
    subscription_status: str
    used_attempt: int
    actual_attempts: int
    remaining_attempts: int


def apply_free_plan_if_needed(
    data: Dict[str, Any], free_plan: Optional[FreePlanConfig] = None
) -> Dict[str, Any]:
    """Fill Free plan defaults for customers without a paid subscription.

    A customer is on the Free plan when they have no subscription id and no
    plan other than Free. Explicitly supplied counters are kept.
    """
    free_plan = free_plan or FreePlanConfig()
    plan = data.get("plan_name") or ""
    if data.get("subscription_id") or (plan and plan != FREE_PLAN_NAME):
        return dict(data)

    defaults = {
        "plan_name": free_plan.plan_name,
        "subscribe_plan_name": free_plan.plan_name,
        "subscription_status": SubscriptionStatus.ACTIVE.value,
        "actual_attempts": free_plan.attempts,
        "used_attempt": 0,
        "subscription_plan_price": free_plan.price,
    }
    merged = dict(data)
    for key, value in defaults.items():
        if merged.get(key) in (None, ""):
            merged[key] = value
    return merged


def get_subscription_status(customer: Customer) -> SubscriptionStatusView:
    is_active = (
        customer.subscription_status == SubscriptionStatus.ACTIVE.value
        and customer.used_attempt < customer.actual_attempts
    )
    return SubscriptionStatusView(
        status="active" if is_active else "inactive",
        remaining_attempts=customer.remaining_attempts,
        plan_name=customer.plan_name,
        used_attempt=customer.used_attempt,
        actual_attempts=customer.actual_attempts,
    )


class SubscriptionService:
    """Customer CRUD plus attempt accounting."""

    def __init__(self, customers: ICustomerStore, free_plan: Optional[FreePlanConfig] = None):
        self.customers = customers
        self.free_plan = free_plan or FreePlanConfig()

    async def create_customer(self, data: Dict[str, Any]) -> Customer:
        """
        Raises:
            CustomerExistsError: customer_id already stored
        """
        customer = Customer.model_validate(apply_free_plan_if_needed(data, self.free_plan))
        return await self.customers.create(customer)

    async def get_customer(self, customer_id: str) -> Customer:
        """
        Raises:
            CustomerNotFoundError: unknown customer id
        """
        customer = await self.customers.get(customer_id)
        if customer is None:
            raise CustomerNotFoundError("Customer not found")
        return customer

    async def update_customer(self, customer_id: str, update: CustomerUpdate) -> Customer:
        customer = await self.get_customer(customer_id)
        changes = update.model_dump(exclude_unset=True)
        updated = await self.customers.save(customer.model_copy(update=changes))
        log.info("customer_updated", customer_id=customer_id, fields=sorted(changes))
        return updated

    async def delete_customer(self, customer_id: str) -> None:
        if not await self.customers.delete(customer_id):
            raise CustomerNotFoundError("Customer not found")
        log.info("customer_deleted", customer_id=customer_id)

    async def increment_attempt(self, customer_id: str) -> AttemptResult:
        """Consume one attempt for a new session.

        Refused (success=False) when the subscription is not active or no
        attempts remain. The status flips to expired when the last attempt is
        used.
        """
        customer = await self.get_customer(customer_id)

        if customer.subscription_status != SubscriptionStatus.ACTIVE.value:
            return self._result(customer, False, f"Subscription is {customer.subscription_status}")
        if customer.used_attempt >= customer.actual_attempts:
            return self._result(customer, False, "No attempts remaining")

        used = customer.used_attempt + 1
        changes: Dict[str, Any] = {"used_attempt": used}
        if used >= customer.actual_attempts:
            changes["subscription_status"] = SubscriptionStatus.EXPIRED.value
        customer = await self.customers.save(customer.model_copy(update=changes))

        log.info(
            "attempt_consumed",
            customer_id=customer_id,
            used_attempt=customer.used_attempt,
            actual_attempts=customer.actual_attempts,
            status=customer.subscription_status,
        )
        return self._result(customer, True, "Attempt recorded")

    @staticmethod
    def _result(customer: Customer, success: bool, message: str) -> AttemptResult:
        return AttemptResult(
            success=success,
            message=message,
            subscription_status=customer.subscription_status,
            used_attempt=customer.used_attempt,
            actual_attempts=customer.actual_attempts,
            remaining_attempts=customer.remaining_attempts,
        )
