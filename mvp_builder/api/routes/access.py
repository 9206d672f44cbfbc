"""
Access gate endpoint.

The UI asks here before rendering any wizard page.
"""

from typing import Optional

from fastapi import APIRouter, Query
import aiosqlite
import structlog

from mvp_builder.api.dependencies import AccessGateDep, SubscriptionServiceDep
from mvp_builder.api.schemas import AccessResponse
from mvp_builder.core.exceptions import CustomerNotFoundError
from mvp_builder.domain.models.customer import Customer

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/access", tags=["access"])


@router.get("", response_model=AccessResponse)
async def check_access(
    gate: AccessGateDep,
    service: SubscriptionServiceDep,
    customer_id: Optional[str] = Query(default=None),
    path: str = Query(default="/"),
):
    """Decide whether the visitor may use the wizard at `path`."""
    customer: Optional[Customer] = None
    lookup_failed = False

    if customer_id and not gate.is_exempt(path):
        try:
            customer = await service.get_customer(customer_id)
        except CustomerNotFoundError:
            customer = None
        except aiosqlite.Error as e:
            log.error("customer_lookup_failed", customer_id=customer_id, error=str(e))
            lookup_failed = True

    decision = gate.decide(path, customer_id, customer=customer, lookup_failed=lookup_failed)
    log.info("access_decided", path=path, state=decision.state.value)
    return AccessResponse.from_decision(decision)
