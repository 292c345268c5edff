"""
Order API Routes

    GET    /api/orders                  list (filters: userId, userEmail, status, active)
    GET    /api/orders/occupied-tables  chairs held by unfinished dine-in orders
    GET    /api/orders/{id}             one order
    POST   /api/orders/create           single order
    POST   /api/orders/create-multiple  checkout of several orders at once
    PUT    /api/orders/{id}             status / payment update (admin)
    DELETE /api/orders/{id}             delete (admin, or owner once completed)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.database import get_db
from orderflow.schemas import (
    ErrorResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderDeleteResponse,
    OrderResponse,
    OrdersCreateResponse,
    OrderStatusUpdate,
    OrderUpdateResponse,
)
from orderflow.services.orders import OrderService

router = APIRouter(prefix="/api/orders", tags=["Orders"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_order_service(request: Request, db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db, request.app.state.broadcaster, request.app.state.settings)


@router.get("", response_model=list[OrderResponse], summary="List Orders")
async def list_orders(
    user_id: Optional[str] = Query(None, alias="userId"),
    user_email: Optional[str] = Query(None, alias="userEmail"),
    status: Optional[str] = Query(None),
    active: bool = Query(False, description="Exclude completed orders"),
    service: OrderService = Depends(get_order_service),
):
    """Orders, newest first. ``userId`` / ``userEmail`` scope to one customer."""
    return await service.list_orders(
        user_id=user_id,
        user_email=user_email,
        status=status,
        active=active,
    )


@router.get("/occupied-tables", response_model=dict[int, list[int]], summary="Occupied Tables")
async def occupied_tables(service: OrderService = Depends(get_order_service)):
    return await service.occupied_tables()


@router.get("/{order_id}", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return await service.get_order(order_id)


@router.post(
    "/create",
    response_model=OrderCreateResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    summary="Create Order",
)
async def create_order(
    order_data: OrderCreate,
    service: OrderService = Depends(get_order_service),
) -> OrderCreateResponse:
    order = await service.create_order(order_data)
    return OrderCreateResponse(
        message="Order created successfully",
        order=OrderResponse.model_validate(order),
    )


@router.post(
    "/create-multiple",
    response_model=OrdersCreateResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    summary="Create Multiple Orders",
)
async def create_multiple_orders(
    orders_data: list[OrderCreate],
    service: OrderService = Depends(get_order_service),
) -> OrdersCreateResponse:
    orders = await service.create_orders(orders_data)
    return OrdersCreateResponse(
        message="Multiple orders created successfully",
        orders=[OrderResponse.model_validate(o) for o in orders],
    )


@router.put(
    "/{order_id}",
    response_model=OrderUpdateResponse,
    responses=ERROR_RESPONSES,
    summary="Update Order Status",
)
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    service: OrderService = Depends(get_order_service),
) -> OrderUpdateResponse:
    order = await service.update_order_status(order_id, update)
    return OrderUpdateResponse(
        message="Order updated successfully",
        order=OrderResponse.model_validate(order),
    )


@router.delete(
    "/{order_id}",
    response_model=OrderDeleteResponse,
    responses={**ERROR_RESPONSES, 403: {"model": ErrorResponse}},
    summary="Delete Order",
)
async def delete_order(
    order_id: str,
    admin: bool = Query(False),
    x_admin_request: Optional[str] = Header(None, alias="X-Admin-Request"),
    service: OrderService = Depends(get_order_service),
) -> OrderDeleteResponse:
    is_admin = admin or (x_admin_request or "").lower() == "true"
    deleted_id = await service.delete_order(order_id, is_admin=is_admin)
    return OrderDeleteResponse(message="Order deleted successfully", deleted_order_id=deleted_id)
