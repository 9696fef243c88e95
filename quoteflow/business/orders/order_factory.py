from __future__ import annotations

from datetime import datetime

from sqlalchemy import update

from quoteflow import db
from quoteflow.business.core.persistence import commit
from quoteflow.business.core.status_validator import QuotationStatusValidator
from quoteflow.business.orders.pricing import allocate_proportionally
from quoteflow.business.orders.status_manager import OrderStatusManager
from quoteflow.business.quotations.quotation_factory import parse_number
from quoteflow.data.core.sequence_generator import SequenceGenerator
from quoteflow.data.inquiries import Inquiry
from quoteflow.data.orders import Order, OrderPart, OrderPayment
from quoteflow.data.quotations import Quotation
from quoteflow.errors import AmountMismatch, ConcurrencyConflict, NotFound, ValidationError
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.orders.factory")


def parse_order_parts(raw_parts) -> list[OrderPart]:
    """
    Validate caller supplied order lines.

    Quantities are whole numbers of at least one; prices default to zero and
    the line total to unit price times quantity.
    """
    if not isinstance(raw_parts, list):
        raise ValidationError("Parts must be a list")

    parts = []
    for index, raw in enumerate(raw_parts):
        if not isinstance(raw, dict):
            raise ValidationError("Each part must be an object", details={f"parts[{index}]": raw})
        quantity = parse_number(raw.get("quantity", 1), f"parts[{index}].quantity", minimum=1)
        if not quantity.is_integer():
            raise ValidationError(f"parts[{index}].quantity must be a whole number",
                                  details={f"parts[{index}].quantity": raw.get("quantity")})
        quantity = int(quantity)
        unit_price = parse_number(raw.get("unitPrice") or 0, f"parts[{index}].unitPrice")
        total_price = raw.get("totalPrice")
        total_price = (parse_number(total_price, f"parts[{index}].totalPrice")
                       if total_price is not None else round(unit_price * quantity, 2))
        parts.append(OrderPart(
            position=index,
            part_name=raw.get("partName") or raw.get("partRef") or "N/A",
            part_ref=raw.get("partRef") or raw.get("partName") or "N/A",
            material=raw.get("material") or "N/A",
            thickness=str(raw.get("thickness") or "N/A"),
            quantity=quantity,
            remarks=raw.get("remarks") or "",
            unit_price=unit_price,
            total_price=total_price,
        ))
    return parts


def build_order_parts(quotation: Quotation, inquiry: Inquiry | None, total_amount: float,
                      explicit_parts: list[OrderPart] | None = None) -> list[OrderPart]:
    """
    Resolve order lines, by priority: explicit parts, quotation items, then the
    inquiry parts priced by a quantity-weighted split of ``total_amount``.
    """
    if explicit_parts:
        return explicit_parts

    if quotation.items:
        return [
            OrderPart(
                position=index,
                part_name=item.part_ref or "N/A",
                part_ref=item.part_ref or "N/A",
                material=item.material or "N/A",
                thickness=item.thickness or "N/A",
                quantity=item.quantity,
                remarks=item.remark or "",
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
            for index, item in enumerate(quotation.items)
        ]

    if inquiry is None or not inquiry.parts:
        return []

    shares = allocate_proportionally(total_amount, [part.quantity for part in inquiry.parts])
    return [
        OrderPart(
            position=index,
            part_name=part.part_ref or "N/A",
            part_ref=part.part_ref or "N/A",
            material=part.material or "N/A",
            thickness=part.thickness or "N/A",
            quantity=part.quantity or 0,
            remarks=part.remarks or "",
            unit_price=share.unit_price,
            total_price=share.total_price,
        )
        for index, (part, share) in enumerate(zip(inquiry.parts, shares))
    ]


class OrderFactory:
    """
    Creates orders from accepted quotations.

    The quotation status is the guard against double creation: it is flipped
    ``accepted -> order_created`` with a conditional UPDATE in the same
    transaction that inserts the order.
    """

    PAYMENT_MODES = ("online", "cod", "direct")
    AMOUNT_TOLERANCE = 0.01

    def __init__(self, status_manager: OrderStatusManager | None = None):
        self.status_manager = status_manager or OrderStatusManager()

    @staticmethod
    def _load_quotation(quotation_id: int) -> Quotation:
        quotation = db.session.get(Quotation, quotation_id)
        if quotation is None:
            raise NotFound("Quotation not found")
        return quotation

    @staticmethod
    def _check_quotation_orderable(quotation: Quotation) -> None:
        if quotation.status == "order_created":
            raise ConcurrencyConflict("An order has already been created for this quotation")
        QuotationStatusValidator.target_for("create_order", quotation.status)

    @classmethod
    def _claim_quotation(cls, quotation: Quotation, now: datetime) -> None:
        result = db.session.execute(
            update(Quotation)
            .where(Quotation.id == quotation.id, Quotation.status == "accepted")
            .values(status="order_created", order_created_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise ConcurrencyConflict("An order has already been created for this quotation")
        quotation.status = "order_created"
        quotation.order_created_at = now

    def create_from_quotation(
        self,
        quotation_id: int,
        *,
        amount,
        payment_method: str,
        actor_id: int | None = None,
        parts: list[dict] | None = None,
        delivery_address: dict | None = None,
        special_instructions: str | None = None,
        notes: str | None = None,
        transaction_id: str | None = None,
    ) -> Order:
        """
        Create an order from an accepted quotation.

        ``online`` orders stay pending until the gateway payment is verified;
        ``cod`` and ``direct`` orders are confirmed immediately.

        Raises:
            ValidationError: bad payment method, amount or parts
            NotFound: quotation or inquiry missing
            InvalidTransition: quotation not accepted
            ConcurrencyConflict: an order already exists for the quotation
            AmountMismatch: amount differs from the quotation total
        """
        if payment_method not in self.PAYMENT_MODES:
            raise ValidationError(f"Payment method must be one of: {', '.join(self.PAYMENT_MODES)}")
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError("Amount must be a number")
        explicit_parts = parse_order_parts(parts) if parts is not None else None

        quotation = self._load_quotation(quotation_id)
        self._check_quotation_orderable(quotation)

        if abs(amount - (quotation.total_amount or 0.0)) > self.AMOUNT_TOLERANCE:
            raise AmountMismatch(
                f"Amount {amount:.2f} does not match quotation total {quotation.total_amount:.2f}",
                details={"expected": quotation.total_amount, "received": amount},
            )

        inquiry = db.session.get(Inquiry, quotation.inquiry_id)
        if inquiry is None:
            raise NotFound("Inquiry for this quotation no longer exists")

        order_number = SequenceGenerator.generate_id_or_fallback("order")
        now = datetime.utcnow()
        self._claim_quotation(quotation, now)

        order = Order(
            order_number=order_number,
            quotation_id=quotation.id,
            inquiry_id=inquiry.id,
            customer_id=quotation.customer_id,
            total_amount=quotation.total_amount,
            currency=quotation.currency,
            status="pending",
            special_instructions=special_instructions or inquiry.special_instructions,
            notes=notes,
            created_by_id=actor_id,
            updated_by_id=actor_id,
        )
        order.delivery_address = delivery_address or inquiry.delivery_address
        order.payment = OrderPayment(
            method="pending" if payment_method == "online" else payment_method,
            status="pending",
            amount=amount,
            transaction_id=transaction_id,
        )
        order.parts = build_order_parts(quotation, inquiry, quotation.total_amount, explicit_parts)
        self.status_manager.append_timeline(order, "pending", actor_id=actor_id, timestamp=now)

        db.session.add(order)
        db.session.flush()
        quotation.order_id = order.id

        if payment_method != "online":
            self.status_manager.transition(order, "confirmed", actor_id=actor_id, now=now)

        commit("create order")
        logger.info(
            f"Order {order.order_number} created from quotation {quotation.quotation_number} "
            f"({payment_method}, status {order.status})"
        )
        return order
