"""
Subscriptions API Routes
Create, read, replace, delete and list subscriptions by month period
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from subservice.api.dependencies import RequestStore, get_store
from subservice.schemas.subscription import (
    ErrorResponse,
    SubscriptionCreated,
    SubscriptionPayload,
    SubscriptionSchema,
)

router = APIRouter()

_ERRORS = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SubscriptionCreated,
    responses={code: _ERRORS[code] for code in (400, 500)},
)
async def create_subscription(
    payload: SubscriptionPayload,
    store: RequestStore = Depends(get_store),
) -> SubscriptionCreated:
    """
    Create a subscription. start_date and end_date are MM-YYYY
    """
    subscription_id = await store.run("create", payload)
    return SubscriptionCreated(id=subscription_id)


@router.get("", response_model=List[SubscriptionSchema], responses={code: _ERRORS[code] for code in (400, 500)})
async def list_subscriptions(
    from_month: Optional[str] = Query(default=None, alias="from", description="Period start (MM-YYYY)"),
    to_month: Optional[str] = Query(default=None, alias="to", description="Period end (MM-YYYY)"),
    store: RequestStore = Depends(get_store),
) -> List[SubscriptionSchema]:
    """
    List subscriptions inside a period. Subscriptions without an end date are left out when `to` is given
    """
    # An empty query value means the bound was not supplied.
    subscriptions = await store.run("list", from_month or None, to_month or None)
    return [SubscriptionSchema.model_validate(s) for s in subscriptions]


@router.get("/{subscription_id}", response_model=SubscriptionSchema, responses={404: _ERRORS[404]})
async def get_subscription(subscription_id: str, store: RequestStore = Depends(get_store)) -> SubscriptionSchema:
    """
    Get a subscription by ID
    """
    subscription = await store.run("get", subscription_id)
    return SubscriptionSchema.model_validate(subscription)


@router.put("/{subscription_id}", response_model=SubscriptionSchema, responses=_ERRORS)
async def update_subscription(
    subscription_id: str,
    payload: SubscriptionPayload,
    store: RequestStore = Depends(get_store),
) -> SubscriptionSchema:
    """
    Replace every field of a subscription
    """
    subscription = await store.run("update", subscription_id, payload)
    return SubscriptionSchema.model_validate(subscription)


@router.delete(
    "/{subscription_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: _ERRORS[404]},
)
async def delete_subscription(subscription_id: str, store: RequestStore = Depends(get_store)) -> Response:
    """
    Delete a subscription by ID
    """
    await store.run("delete", subscription_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
