from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from quoteflow.business.core.status_validator import OrderStatusValidator
from quoteflow.data.orders import Order, OrderDispatch, OrderPayment, OrderProduction, OrderTimelineEntry
from quoteflow.errors import InvalidTransition, ValidationError
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.orders.status")


TIMELINE_DESCRIPTIONS = {
    "pending": "Order placed, awaiting confirmation",
    "confirmed": "Order confirmed, payment verified",
    "in_production": "Production started",
    "ready_for_dispatch": "Production completed, ready for dispatch",
    "dispatched": "Order dispatched",
    "delivered": "Order delivered successfully",
    "cancelled": "Order cancelled",
}


@dataclass(frozen=True)
class StatusChange:
    entity_type: str
    entity_id: int | None
    from_status: str | None
    to_status: str

    @property
    def changed(self) -> bool:
        return self.from_status != self.to_status


class OrderStatusManager:
    """
    Applies order status transitions.

    This class is responsible for:
    - validating the transition against the lifecycle table before any write
    - setting the status and the timestamps that belong to the target status
    - keeping payment state consistent with the order status
    - appending the timeline entry

    Nothing is committed here; the caller owns the unit of work.
    """

    @staticmethod
    def ensure_payment(order: Order) -> OrderPayment:
        if order.payment is None:
            order.payment = OrderPayment(method="pending", status="pending", amount=order.total_amount)
        return order.payment

    @staticmethod
    def ensure_production(order: Order) -> OrderProduction:
        if order.production is None:
            order.production = OrderProduction()
        return order.production

    @staticmethod
    def ensure_dispatch(order: Order) -> OrderDispatch:
        if order.dispatch is None:
            order.dispatch = OrderDispatch()
        return order.dispatch

    @staticmethod
    def append_timeline(order: Order, status: str, *, actor_id: int | None, timestamp: datetime,
                        description: str | None = None) -> OrderTimelineEntry:
        entry = OrderTimelineEntry(
            status=status,
            description=description or TIMELINE_DESCRIPTIONS.get(status, status),
            timestamp=timestamp,
            actor_id=actor_id,
        )
        order.timeline.append(entry)
        return entry

    def transition(
        self,
        order: Order,
        new_status: str,
        *,
        actor_id: int | None = None,
        estimated_completion: datetime | None = None,
        actual_delivery: datetime | None = None,
        description: str | None = None,
        now: datetime | None = None,
    ) -> StatusChange:
        """
        Move ``order`` to ``new_status``.

        A transition to the current status succeeds without touching the order.

        Raises:
            ValidationError: ``new_status`` is not an order status
            InvalidTransition: the move is not in the lifecycle table
        """
        if new_status not in OrderStatusValidator.STATUSES:
            raise ValidationError(f"Unknown order status: {new_status}")

        old_status = order.status
        if old_status == new_status:
            logger.debug(f"Order {order.order_number} already {new_status}; nothing to do")
            return StatusChange("order", order.id, old_status, new_status)

        if not OrderStatusValidator.can_transition(old_status, new_status):
            raise InvalidTransition("order", old_status, new_status)

        now = now or datetime.utcnow()
        order.status = new_status
        order.updated_at = now
        if actor_id is not None:
            order.updated_by_id = actor_id

        if new_status == "confirmed":
            self._apply_confirmed(order, now)
        elif new_status == "in_production":
            production = self.ensure_production(order)
            if production.start_date is None:
                production.start_date = now
            if estimated_completion is not None:
                production.estimated_completion = estimated_completion
        elif new_status == "ready_for_dispatch":
            self.ensure_production(order).actual_completion = now
        elif new_status == "dispatched":
            dispatch = self.ensure_dispatch(order)
            if dispatch.dispatched_at is None:
                dispatch.dispatched_at = now
        elif new_status == "delivered":
            self.ensure_dispatch(order).actual_delivery = actual_delivery or now
        elif new_status == "cancelled":
            self.ensure_payment(order).status = "refunded"

        self.append_timeline(order, new_status, actor_id=actor_id, timestamp=now, description=description)
        logger.info(f"Order {order.order_number}: {old_status} -> {new_status}")
        return StatusChange("order", order.id, old_status, new_status)

    def _apply_confirmed(self, order: Order, now: datetime) -> None:
        if order.confirmed_at is None:
            order.confirmed_at = now
        payment = self.ensure_payment(order)
        payment.status = "completed"
        if payment.paid_at is None:
            payment.paid_at = now
        if not payment.method or payment.method == "pending":
            payment.method = "bank_transfer"
