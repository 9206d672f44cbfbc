"""
Customer API routes.

Customer records mirror the external billing system. Responses use the
``{"success": bool, "message"?: str, "data" | "error": ...}`` envelope the
storefront integration expects.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
import structlog

from mvp_builder.api.dependencies import SubscriptionServiceDep
from mvp_builder.api.schemas import CustomerCreate
from mvp_builder.core.exceptions import CustomerExistsError, CustomerNotFoundError
from mvp_builder.domain.models.customer import Customer, CustomerUpdate
from mvp_builder.services.subscription_service import get_subscription_status

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/customers", tags=["customers"])


def _ok(data: Any, message: Optional[str] = None, status_code: int = status.HTTP_200_OK):
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def _fail(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def _dump(customer: Customer) -> Dict[str, Any]:
    return customer.model_dump(mode="json")


# ============ CUSTOMER CRUD ============


@router.post("")
async def create_customer(request: CustomerCreate, service: SubscriptionServiceDep):
    """Create a customer; Free plan defaults apply without a paid subscription."""
    try:
        customer = await service.create_customer(request.model_dump(exclude_none=True))
    except CustomerExistsError:
        return _fail(status.HTTP_409_CONFLICT, "Customer already exists")

    log.info("customer_created", customer_id=customer.customer_id, plan=customer.plan_name)
    return _ok(_dump(customer), "Customer created successfully", status.HTTP_201_CREATED)


@router.get("")
async def list_customers(service: SubscriptionServiceDep):
    customers = await service.customers.list()
    return _ok([_dump(c) for c in customers])


@router.get("/{customer_id}")
async def get_customer(customer_id: str, service: SubscriptionServiceDep):
    try:
        customer = await service.get_customer(customer_id)
    except CustomerNotFoundError as e:
        return _fail(status.HTTP_404_NOT_FOUND, e.message)
    return _ok(_dump(customer))


@router.put("/{customer_id}")
async def update_customer(
    customer_id: str,
    request: CustomerUpdate,
    service: SubscriptionServiceDep,
):
    """Update the supplied fields; fields left out are kept."""
    try:
        customer = await service.update_customer(customer_id, request)
    except CustomerNotFoundError as e:
        return _fail(status.HTTP_404_NOT_FOUND, e.message)
    return _ok(_dump(customer), "Customer updated successfully")


@router.delete("/{customer_id}")
async def delete_customer(customer_id: str, service: SubscriptionServiceDep):
    try:
        await service.delete_customer(customer_id)
    except CustomerNotFoundError as e:
        return _fail(status.HTTP_404_NOT_FOUND, e.message)
    return JSONResponse(
        content={"success": True, "message": "Customer deleted successfully"}
    )


# ============ SUBSCRIPTION ============


@router.get("/{customer_id}/subscription-status")
async def subscription_status(customer_id: str, service: SubscriptionServiceDep):
    """Active only when the status is active and attempts remain."""
    try:
        customer = await service.get_customer(customer_id)
    except CustomerNotFoundError as e:
        return _fail(status.HTTP_404_NOT_FOUND, e.message)
    return _ok(get_subscription_status(customer).model_dump())


@router.post("/{customer_id}/increment-attempt")
async def increment_attempt(customer_id: str, service: SubscriptionServiceDep):
    """Consume one attempt when a new wizard session starts.

    A refused increment (inactive or exhausted) is reported with
    ``success: false`` and the current counters.
    """
    try:
        result = await service.increment_attempt(customer_id)
    except CustomerNotFoundError as e:
        return _fail(status.HTTP_404_NOT_FOUND, e.message)

    counters = result.model_dump(exclude={"success", "message"})
    if not result.success:
        return JSONResponse(
            content={"success": False, "error": result.message, "data": counters}
        )
    return _ok(counters, result.message)
