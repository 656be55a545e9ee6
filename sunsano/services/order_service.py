"""Order lifecycle service."""

import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sunsano.config import settings
from sunsano.core.exceptions import InvalidOrderStatus, NotFoundError, ValidationError
from sunsano.domain.order_state import (
    COMPLETED_ORDER_STATUSES,
    ORDER_STATUSES,
    assert_order_transition,
    can_transition_order,
)
from sunsano.domain.pricing import OrderTotals, calculate_totals, quantize_money
from sunsano.models.order import Order, OrderNote
from sunsano.schemas.order import OrderCreate, OrderItem
from sunsano.services.product_service import product_service
from sunsano.utils.identifiers import generate_unique_order_number

logger = logging.getLogger(__name__)

REUSABLE_ORDER_STATUSES = ("pending", "failed")


class OrderService:
    """Service for creating and managing orders."""

    async def _price_items(self, db: AsyncSession, items: list[OrderItem]) -> tuple[list[dict], OrderTotals]:
        """Check items against the catalogue and compute totals."""
        products = await product_service.get_products_by_ids(db, [item.product_id for item in items])
        errors = []
        for item in items:
            product = products.get(item.product_id)
            if product is None:
                errors.append({"field": item.product_id, "message": "Unknown product"})
            elif not product.available:
                errors.append({"field": item.product_id, "message": f"{product.name} is currently unavailable"})
            elif quantize_money(item.price) != quantize_money(product.price):
                errors.append({"field": item.product_id, "message": f"Price of {product.name} has changed"})
        if errors:
            raise ValidationError("Some items cannot be ordered", errors=errors)

        lines = [
            {
                "product_id": item.product_id,
                "name": item.name,
                "price": str(quantize_money(item.price)),
                "quantity": item.quantity,
            }
            for item in items
        ]
        totals = calculate_totals(
            ((item.price, item.quantity) for item in items),
            settings.delivery_fee,
        )
        return lines, totals

    @staticmethod
    def _check_client_totals(data: OrderCreate, totals: OrderTotals) -> None:
        if data.total is not None and quantize_money(data.total) != totals.total:
            raise ValidationError(
                f"Order total {data.total} does not match calculated total {totals.total}"
            )

    async def create_order(self, db: AsyncSession, data: OrderCreate) -> Order:
        """Create a pending order from a checkout draft."""
        lines, totals = await self._price_items(db, data.items)
        self._check_client_totals(data, totals)

        if data.order_number:
            if await self.get_by_number(db, data.order_number):
                raise ValidationError(f"Order number {data.order_number} is already in use")
            order_number = data.order_number
        else:
            order_number = await generate_unique_order_number(db)

        customer = data.customer
        order = Order(
            order_number=order_number,
            status="pending",
            customer_firstname=customer.firstname,
            customer_lastname=customer.lastname,
            customer_email=customer.email,
            customer_phone=customer.phone,
            customer_address=customer.address,
            customer_zipcode=customer.zipcode,
            customer_city=customer.city,
            customer_notes=customer.notes,
            items=lines,
            subtotal=totals.subtotal,
            delivery_cost=totals.delivery_fee,
            total=totals.total,
            currency=settings.currency,
            payment_method=data.payment_method,
            notes=[],
        )
        db.add(order)
        await db.flush()

        logger.info(f"Order created: {order.order_number} for {order.customer_email}, total {order.total}")
        return order

    async def get_or_create_for_checkout(self, db: AsyncSession, data: OrderCreate) -> Order:
        """Return the order for a checkout attempt.

        A retry sends the same order number again: a pending or failed order
        with that number is reused (failed goes back to pending) and its items
        refreshed from the draft.
        """
        existing = await self.get_by_number(db, data.order_number) if data.order_number else None
        if existing is None:
            return await self.create_order(db, data)

        if existing.status not in REUSABLE_ORDER_STATUSES:
            raise InvalidOrderStatus(f"Order {existing.order_number} is already {existing.status}")
        if existing.customer_email.lower() != data.customer.email.lower():
            raise ValidationError(f"Order number {existing.order_number} is already in use")

        if existing.status == "failed":
            await self.update_status(db, existing, "pending", "Payment retried")

        lines, totals = await self._price_items(db, data.items)
        self._check_client_totals(data, totals)
        self._apply_items(existing, lines, totals)
        existing.payment_method = data.payment_method
        await db.flush()

        logger.info(f"Order {existing.order_number} reused for a new checkout attempt")
        return existing

    async def get_order(self, db: AsyncSession, order_id: UUID) -> Order:
        order = await db.get(Order, order_id)
        if not order:
            raise NotFoundError("Order", str(order_id))
        return order

    async def get_by_number(self, db: AsyncSession, order_number: str) -> Order | None:
        result = await db.execute(select(Order).where(Order.order_number == order_number))
        return result.scalar_one_or_none()

    async def list_orders(
        self,
        db: AsyncSession,
        status: str | None = None,
        customer_email: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Order], int]:
        """List orders, newest first."""
        query = select(Order)
        if status:
            query = query.where(Order.status == status)
        if customer_email:
            query = query.where(Order.customer_email.ilike(f"%{customer_email}%"))

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        query = query.order_by(Order.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def search(self, db: AsyncSession, query: str) -> list[Order]:
        pattern = f"%{query}%"
        result = await db.execute(
            select(Order)
            .where(
                or_(
                    Order.order_number.ilike(pattern),
                    Order.customer_firstname.ilike(pattern),
                    Order.customer_lastname.ilike(pattern),
                    Order.customer_email.ilike(pattern),
                )
            )
            .order_by(Order.created_at.desc())
            .limit(100)
        )
        return list(result.scalars().all())

    async def get_by_customer(self, db: AsyncSession, customer_email: str) -> list[Order]:
        result = await db.execute(
            select(Order)
            .where(func.lower(Order.customer_email) == customer_email.lower())
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def update_status(
        self,
        db: AsyncSession,
        order: Order | UUID,
        new_status: str,
        notes: str | None = None,
    ) -> tuple[Order, str]:
        """Move an order to a new status and record the change.

        Returns:
            tuple: (order, previous status)

        Raises:
            ValidationError: If the transition is not allowed
        """
        if not isinstance(order, Order):
            order = await self.get_order(db, order)
        previous = order.status
        assert_order_transition(previous, new_status)

        order.status = new_status
        if new_status == "paid":
            order.paid_at = datetime.now(UTC)
        order.notes.append(OrderNote(
            text=notes or f"Status changed from {previous} to {new_status}",
            note_type="status_update",
            status=new_status,
        ))
        await db.flush()

        logger.info(f"Order {order.order_number} status: {previous} -> {new_status}")
        return order, previous

    async def apply_payment_outcome(
        self,
        db: AsyncSession,
        order: Order,
        new_status: str,
        note: str,
    ) -> bool:
        """Mirror a payment result onto the order when the order allows it.

        Returns:
            bool: True if the order status changed
        """
        if order.status == new_status:
            return False
        if not can_transition_order(order.status, new_status):
            logger.warning(
                f"Ignoring payment outcome '{new_status}' for order {order.order_number} in status {order.status}"
            )
            return False
        await self.update_status(db, order, new_status, note)
        return True

    async def cancel_order(self, db: AsyncSession, order_id: UUID) -> Order:
        order = await self.get_order(db, order_id)
        if order.status != "pending":
            raise InvalidOrderStatus("Only pending orders can be cancelled")
        order, _ = await self.update_status(db, order, "cancelled", "Order cancelled by customer")
        return order

    def _apply_items(self, order: Order, lines: list[dict], totals: OrderTotals) -> None:
        order.items = lines
        order.subtotal = totals.subtotal
        order.delivery_cost = totals.delivery_fee
        order.total = totals.total

    async def update_items(self, db: AsyncSession, order_id: UUID, items: list[OrderItem]) -> Order:
        order = await self.get_order(db, order_id)
        if order.status != "pending":
            raise InvalidOrderStatus("Only pending orders can be modified")

        lines, totals = await self._price_items(db, items)
        self._apply_items(order, lines, totals)
        await db.flush()

        logger.info(f"Order {order.order_number} items updated, new total {order.total}")
        return order

    async def add_note(self, db: AsyncSession, order_id: UUID, text: str, note_type: str = "general") -> Order:
        order = await self.get_order(db, order_id)
        order.notes.append(OrderNote(text=text, note_type=note_type))
        await db.flush()
        return order

    async def get_history(self, db: AsyncSession, order_id: UUID) -> dict:
        order = await self.get_order(db, order_id)
        status_changes = [
            {"status": note.status, "timestamp": note.created_at, "note": note.text}
            for note in order.notes
            if note.note_type == "status_update"
        ]
        return {"order": order, "history": list(order.notes), "status_changes": status_changes}

    async def get_stats(self, db: AsyncSession) -> dict:
        by_status = dict.fromkeys(ORDER_STATUSES, 0)
        result = await db.execute(select(Order.status, func.count()).group_by(Order.status))
        for status, count in result.all():
            by_status[status] = count

        result = await db.execute(
            select(func.avg(Order.total)).where(Order.status.in_(COMPLETED_ORDER_STATUSES))
        )
        average = result.scalar()

        since = datetime.now(UTC) - timedelta(days=7)
        result = await db.execute(select(func.count(Order.id)).where(Order.created_at >= since))

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "average_order_value": quantize_money(average) if average is not None else Decimal("0.00"),
            "recent_orders": result.scalar() or 0,
        }

    async def cleanup_old_orders(self, db: AsyncSession, older_than_days: int | None = None) -> int:
        """Delete delivered and cancelled orders past the retention window."""
        days = older_than_days if older_than_days is not None else settings.order_retention_days
        cutoff = datetime.now(UTC) - timedelta(days=days)
        result = await db.execute(
            select(Order).where(
                Order.status.in_(("delivered", "cancelled")),
                Order.created_at < cutoff,
            )
        )
        orders = result.scalars().all()
        for order in orders:
            await db.delete(order)
        await db.flush()

        if orders:
            logger.info(f"Cleaned up {len(orders)} old orders")
        return len(orders)


order_service = OrderService()
