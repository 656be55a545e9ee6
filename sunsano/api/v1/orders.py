"""Order endpoints."""

import math
from uuid import UUID

from fastapi import APIRouter, Query, status

from sunsano.api.deps import AdminAccess, DbSession
from sunsano.models.order import Order
from sunsano.schemas.order import (
    OrderCreate,
    OrderCreateResponse,
    OrderHistoryResponse,
    OrderItemsUpdate,
    OrderListResponse,
    OrderNoteCreate,
    OrderResponse,
    OrderStatsResponse,
    OrderStatusUpdate,
    PaymentInitResponse,
)
from sunsano.services.order_service import order_service
from sunsano.services.payment_service import payment_service

router = APIRouter()


@router.post("/", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, db: DbSession) -> OrderCreateResponse:
    """Place an order and open a payment attempt for it.

    Sending the number of a pending or failed order again starts a new
    attempt for that order instead of creating a second one.
    """
    order = await order_service.get_or_create_for_checkout(db, data)
    payment = await payment_service.initialize_payment(db, order)
    return OrderCreateResponse(
        order=OrderResponse.model_validate(order),
        payment=PaymentInitResponse.model_validate(payment, from_attributes=True),
    )


@router.get("/", response_model=OrderListResponse, dependencies=[AdminAccess])
async def list_orders(
    db: DbSession,
    status_filter: str | None = Query(default=None, alias="status"),
    customer_email: str | None = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> OrderListResponse:
    """List orders, newest first (admin only)."""
    orders, total = await order_service.list_orders(
        db, status=status_filter, customer_email=customer_email, page=page, page_size=page_size
    )
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


@router.get("/stats", response_model=OrderStatsResponse, dependencies=[AdminAccess])
async def order_stats(db: DbSession) -> dict:
    return await order_service.get_stats(db)


@router.get("/search", response_model=list[OrderResponse], dependencies=[AdminAccess])
async def search_orders(
    db: DbSession,
    q: str = Query(..., min_length=2, max_length=100),
) -> list[Order]:
    """Search by order number, customer name or email (admin only)."""
    return await order_service.search(db, q)


@router.get("/customer/{email}", response_model=list[OrderResponse], dependencies=[AdminAccess])
async def customer_orders(email: str, db: DbSession) -> list[Order]:
    return await order_service.get_by_customer(db, email)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID, db: DbSession) -> Order:
    return await order_service.get_order(db, order_id)


@router.get("/{order_id}/history", response_model=OrderHistoryResponse)
async def get_order_history(order_id: UUID, db: DbSession) -> dict:
    """Notes and status changes of an order."""
    return await order_service.get_history(db, order_id)


@router.patch("/{order_id}/status", response_model=OrderResponse, dependencies=[AdminAccess])
async def update_order_status(order_id: UUID, data: OrderStatusUpdate, db: DbSession) -> Order:
    """Move an order through its lifecycle (admin only)."""
    order, _ = await order_service.update_status(db, order_id, data.status, data.notes)
    return order


@router.put("/{order_id}/items", response_model=OrderResponse)
async def update_order_items(order_id: UUID, data: OrderItemsUpdate, db: DbSession) -> Order:
    """Replace the items of a pending order."""
    return await order_service.update_items(db, order_id, data.items)


@router.post("/{order_id}/notes", response_model=OrderResponse, dependencies=[AdminAccess])
async def add_order_note(order_id: UUID, data: OrderNoteCreate, db: DbSession) -> Order:
    return await order_service.add_note(db, order_id, data.text, data.note_type)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: UUID, db: DbSession) -> Order:
    """Cancel a pending order."""
    return await order_service.cancel_order(db, order_id)
