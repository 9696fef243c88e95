from __future__ import annotations

from datetime import datetime

from quoteflow import db
from quoteflow.business.core.persistence import commit
from quoteflow.business.orders.order_factory import build_order_parts
from quoteflow.business.orders.status_manager import OrderStatusManager, StatusChange
from quoteflow.data.inquiries import Inquiry
from quoteflow.data.orders import Order
from quoteflow.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.orders.context")


class OrderContext:
    """
    Business wrapper around a single order.

    Every mutating method validates first, applies the change through the
    status manager and commits once.
    """

    def __init__(self, order_id: int, *, status_manager: OrderStatusManager | None = None):
        self.order_id = order_id
        self.status_manager = status_manager or OrderStatusManager()
        self._order = None

    @classmethod
    def by_quotation(cls, quotation_id: int) -> "OrderContext":
        order = Order.query.filter_by(quotation_id=quotation_id).first()
        if order is None:
            raise NotFound("Order not found")
        return cls(order.id)

    @property
    def order(self) -> Order:
        if self._order is None:
            self._order = db.session.get(Order, self.order_id)
            if self._order is None:
                raise NotFound("Order not found")
        return self._order

    def check_access(self, user) -> Order:
        """Customers may only see their own orders."""
        if not user.is_back_office and self.order.customer_id != user.id:
            raise Forbidden("Access denied")
        return self.order

    def update_status(self, new_status: str, *, actor_id: int | None = None, notes: str | None = None) -> StatusChange:
        change = self.status_manager.transition(self.order, new_status, actor_id=actor_id)
        if notes:
            self.order.notes = notes
        commit("update order status")
        return change

    def cancel(self, *, actor_id: int | None = None, reason: str | None = None) -> StatusChange:
        description = f"Order cancelled: {reason}" if reason else None
        change = self.status_manager.transition(self.order, "cancelled", actor_id=actor_id, description=description)
        commit("cancel order")
        return change

    def set_delivery_time(self, estimated_completion: datetime, *, notes: str | None = None,
                          actor_id: int | None = None) -> list[StatusChange]:
        """
        Record the expected completion date. Orders not yet in production are
        moved into production, confirming pending orders on the way.
        """
        order = self.order
        changes: list[StatusChange] = []
        if order.status in ("pending", "confirmed"):
            if order.status == "pending":
                changes.append(self.status_manager.transition(order, "confirmed", actor_id=actor_id))
            changes.append(self.status_manager.transition(
                order, "in_production", actor_id=actor_id, estimated_completion=estimated_completion
            ))
        elif order.status in ("delivered", "cancelled"):
            raise InvalidTransition("order", order.status, "in_production",
                                    message=f"Cannot set delivery time on a {order.status} order")

        production = self.status_manager.ensure_production(order)
        production.estimated_completion = estimated_completion
        if notes:
            production.notes = notes
        order.updated_at = datetime.utcnow()
        commit("update delivery time")
        return changes

    def record_dispatch(self, *, courier: str, tracking_number: str, estimated_delivery: datetime | None = None,
                        notes: str | None = None, actor_id: int | None = None) -> StatusChange:
        order = self.order
        if order.status != "ready_for_dispatch":
            raise InvalidTransition("order", order.status, "dispatched",
                                    message="Order is not ready for dispatch")
        if not courier or not tracking_number:
            raise ValidationError("Courier and tracking number are required")

        dispatch = self.status_manager.ensure_dispatch(order)
        dispatch.courier = courier
        dispatch.tracking_number = tracking_number
        dispatch.estimated_delivery = estimated_delivery
        if notes:
            dispatch.notes = notes
        change = self.status_manager.transition(order, "dispatched", actor_id=actor_id)
        commit("record dispatch")
        return change

    def update_dispatch(self, *, courier: str | None = None, tracking_number: str | None = None,
                        estimated_delivery: datetime | None = None, notes: str | None = None) -> Order:
        order = self.order
        if order.status not in ("dispatched", "delivered"):
            raise ValidationError("Order is not dispatched")

        dispatch = self.status_manager.ensure_dispatch(order)
        if courier:
            dispatch.courier = courier
        if tracking_number:
            dispatch.tracking_number = tracking_number
        if estimated_delivery:
            dispatch.estimated_delivery = estimated_delivery
        if notes:
            dispatch.notes = notes
        order.updated_at = datetime.utcnow()
        commit("update dispatch details")
        return order

    def mark_delivered(self, *, actual_delivery: datetime | None = None, notes: str | None = None,
                       actor_id: int | None = None) -> StatusChange:
        order = self.order
        if order.status != "dispatched":
            raise InvalidTransition("order", order.status, "delivered", message="Order is not dispatched")

        change = self.status_manager.transition(order, "delivered", actor_id=actor_id, actual_delivery=actual_delivery)
        if notes:
            order.dispatch.notes = notes
        commit("mark order delivered")
        return change

    def tracking_info(self) -> dict:
        order = self.order
        if order.status not in ("dispatched", "delivered"):
            raise ValidationError("Order is not dispatched yet")
        return {
            "orderNumber": order.order_number,
            "status": order.status,
            "dispatch": order.dispatch.to_dict() if order.dispatch else None,
        }

    def verify_payment(self, gateway, *, gateway_order_id: str, payment_id: str, signature: str,
                       actor_id: int | None = None) -> StatusChange:
        """
        Confirm an online order from a gateway callback.

        Raises:
            ValidationError: signature mismatch or order not awaiting payment
            DependencyFailure: payment details could not be fetched
        """
        order = self.order
        if not gateway.verify_signature(gateway_order_id, payment_id, signature):
            logger.warning(f"Payment signature mismatch for order {order.order_number}")
            raise ValidationError("Payment verification failed")

        if order.status != "pending":
            if order.payment is not None and order.payment.transaction_id == payment_id:
                return StatusChange("order", order.id, order.status, order.status)
            raise ValidationError(f"Order {order.order_number} is not awaiting payment")

        details = gateway.fetch_payment_details(payment_id)

        if not order.parts:
            inquiry = db.session.get(Inquiry, order.inquiry_id)
            order.parts = build_order_parts(order.quotation, inquiry, details.get("amount") or order.total_amount)

        payment = self.status_manager.ensure_payment(order)
        payment.method = "razorpay"
        payment.gateway = "razorpay"
        payment.transaction_id = payment_id
        payment.gateway_order_id = gateway_order_id
        payment.amount = details.get("amount") or order.total_amount
        change = self.status_manager.transition(order, "confirmed", actor_id=actor_id)
        commit("confirm payment")
        return change

    def refund(self, gateway, *, amount: float | None = None, reason: str | None = None,
               actor_id: int | None = None) -> StatusChange:
        """Refund through the gateway, then cancel. Nothing changes if the gateway call fails."""
        order = self.order
        payment = order.payment
        if payment is None or payment.status != "completed" or not payment.transaction_id:
            raise ValidationError("Order has no completed gateway payment to refund")
        if order.status in ("dispatched", "delivered", "cancelled"):
            raise InvalidTransition("order", order.status, "cancelled")

        # raises DependencyFailure before anything is written
        refund = gateway.refund(payment.transaction_id, amount=amount, reason=reason)

        payment.refund_id = refund.get("id")
        description = f"Order cancelled and refunded: {reason}" if reason else "Order cancelled and refunded"
        change = self.status_manager.transition(order, "cancelled", actor_id=actor_id, description=description)
        commit("refund order")
        return change
