"""
Access gate: decides whether the wizard is usable for a visitor.

A single implementation shared by the HTTP endpoint and the Streamlit UI.
The decision depends on the requested path, the customer id from the request,
the fetched customer record and the environment:

    exempt route                     -> allowed (exempt)
    no customer id, dev bypass       -> allowed (dev bypass)
    no customer id                   -> access required
    lookup failed / no such customer -> customer not found
    status "active"                  -> allowed (free plan gets a usage banner)
    status "expired"                 -> renewal required
    anything else                    -> upgrade required

Remaining attempts are informational only; billing flips the status to
expired when attempts run out.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from mvp_builder.core.config import AccessConfig
from mvp_builder.domain.models.customer import Customer, SubscriptionStatus

log = structlog.get_logger(__name__)


class AccessState(str, Enum):
    ALLOWED = "allowed"
    EXEMPT = "exempt"
    DEV_BYPASS = "dev_bypass"
    ACCESS_REQUIRED = "access_required"
    NOT_FOUND = "not_found"
    RENEWAL_REQUIRED = "renewal_required"
    UPGRADE_REQUIRED = "upgrade_required"


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState
    title: str = ""
    message: str = ""
    banner: Optional[str] = None
    remaining_attempts: Optional[int] = None

    @property
    def allowed(self) -> bool:
        return self.state in (AccessState.ALLOWED, AccessState.EXEMPT, AccessState.DEV_BYPASS)


class AccessGate:
    """Request-time subscription check.

    Args:
        config: Exempt routes and dev bypass switch
        environment: "development" enables the bypass for anonymous visitors
    """

    def __init__(self, config: AccessConfig, environment: str):
        self.config = config
        self.environment = environment

    def is_exempt(self, path: str) -> bool:
        if path in self.config.exempt_paths:
            return True
        return any(path.startswith(prefix) for prefix in self.config.exempt_prefixes)

    def decide(
        self,
        path: str,
        customer_id: Optional[str],
        customer: Optional[Customer] = None,
        lookup_failed: bool = False,
    ) -> AccessDecision:
        """Map the visitor's situation to an access decision."""
        if self.is_exempt(path):
            return AccessDecision(AccessState.EXEMPT)

        if not customer_id:
            if self.config.dev_bypass and self.environment == "development":
                return AccessDecision(
                    AccessState.DEV_BYPASS, banner="Development mode: access check bypassed"
                )
            return AccessDecision(
                AccessState.ACCESS_REQUIRED,
                title="Access Required",
                message="Please access this app through your store to use your subscription.",
            )

        if lookup_failed or customer is None:
            log.info("access_customer_not_found", customer_id=customer_id)
            return AccessDecision(
                AccessState.NOT_FOUND,
                title="Customer Not Found",
                message=(
                    f"No customer found with ID: {customer_id}. "
                    "Please check your customer ID and try again."
                ),
            )

        remaining = customer.remaining_attempts
        status = customer.subscription_status

        if status == SubscriptionStatus.ACTIVE.value:
            banner = None
            if customer.is_free_plan:
                banner = f"{remaining} of {customer.actual_attempts} uses remaining"
            return AccessDecision(
                AccessState.ALLOWED, banner=banner, remaining_attempts=remaining
            )

        if status == SubscriptionStatus.EXPIRED.value:
            return AccessDecision(
                AccessState.RENEWAL_REQUIRED,
                title="Subscription Expired",
                message="Your subscription has expired. Please renew to continue using the app.",
                remaining_attempts=remaining,
            )

        # paused, cancelled or a status we do not know
        if customer.is_free_plan:
            message = (
                f"You've used all {customer.actual_attempts} free attempts. "
                "Please upgrade to continue."
            )
        else:
            message = (
                f"Your subscription is {status}. Please upgrade to continue using the app."
            )
        log.info("access_upgrade_required", customer_id=customer_id, status=status)
        return AccessDecision(
            AccessState.UPGRADE_REQUIRED,
            title="Subscription Inactive",
            message=message,
            remaining_attempts=remaining,
        )
