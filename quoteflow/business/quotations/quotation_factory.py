from __future__ import annotations

from datetime import datetime, timedelta

from quoteflow import db
from quoteflow.business.core.persistence import commit
from quoteflow.business.core.status_validator import InquiryStatusValidator
from quoteflow.business.inquiries.inquiry_context import InquiryContext
from quoteflow.data.core.sequence_generator import SequenceGenerator
from quoteflow.data.quotations import Quotation, QuotationItem
from quoteflow.errors import ValidationError
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.quotations.factory")

VALIDITY_DAYS = 30


def parse_number(value, field: str, *, minimum: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", details={field: value})
    if number < minimum:
        raise ValidationError(f"{field} must be at least {minimum:g}", details={field: value})
    return number


def parse_items(raw_items) -> list[QuotationItem]:
    """Priced lines; total defaults to unit price times quantity."""
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("Items must be a list")
    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object", details={f"items[{index}]": raw})
        quantity = int(parse_number(raw.get('quantity', 1), f"items[{index}].quantity", minimum=1))
        unit_price = parse_number(raw.get('unitPrice', 0), f"items[{index}].unitPrice")
        total_price = raw.get('totalPrice')
        total_price = (parse_number(total_price, f"items[{index}].totalPrice")
                       if total_price is not None else round(unit_price * quantity, 2))
        items.append(QuotationItem(
            position=index,
            part_ref=raw.get('partRef'),
            material=raw.get('material'),
            thickness=str(raw['thickness']) if raw.get('thickness') is not None else None,
            grade=raw.get('grade'),
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            remark=raw.get('remark') or raw.get('remarks'),
        ))
    return items


class QuotationFactory:
    """
    Raises a quotation against an inquiry.

    One quotation per inquiry. The customer details are copied onto the
    quotation and never refreshed afterwards.
    """

    @staticmethod
    def create(inquiry_id: int, data: dict, *, actor) -> Quotation:
        """
        Raises:
            NotFound: inquiry missing
            ValidationError: quotation already exists, bad items or amount
            InvalidTransition: inquiry can no longer be quoted
        """
        inquiry_context = InquiryContext(inquiry_id)
        inquiry = inquiry_context.inquiry
        if inquiry_context.quotation is not None:
            raise ValidationError("Quotation already exists for this inquiry")

        items = parse_items(data.get('items'))
        if data.get('totalAmount') is not None:
            total_amount = parse_number(data['totalAmount'], 'totalAmount')
        elif items:
            total_amount = round(sum(item.total_price for item in items), 2)
        else:
            raise ValidationError("Either totalAmount or priced items are required")

        valid_until = data.get('validUntil')
        if valid_until:
            try:
                valid_until = datetime.fromisoformat(str(valid_until))
            except ValueError:
                raise ValidationError("validUntil must be an ISO date", details={'validUntil': valid_until})

        InquiryStatusValidator.check(inquiry.status, "quoted")
        # numbering before any other write; the fallback path rolls the session back
        quotation_number = SequenceGenerator.generate_id_or_fallback("quotation")
        inquiry_context.set_status("quoted", actor_id=actor.id)

        customer = inquiry.customer
        now = datetime.utcnow()
        quotation = Quotation(
            quotation_number=quotation_number,
            inquiry_id=inquiry.id,
            customer_id=customer.id,
            customer_name=customer.full_name,
            customer_company=customer.company_name,
            customer_email=customer.email,
            customer_phone=customer.phone_number,
            total_amount=total_amount,
            currency=(data.get('currency') or 'USD').upper()[:3],
            status='draft',
            valid_until=valid_until or now + timedelta(days=VALIDITY_DAYS),
            terms=data.get('terms') or Quotation.DEFAULT_TERMS,
            notes=data.get('notes'),
            created_by_id=actor.id,
            updated_by_id=actor.id,
        )
        quotation.items = items

        db.session.add(quotation)
        db.session.flush()
        inquiry.quotation_id = quotation.id
        commit("create quotation")
        logger.info(
            f"Quotation {quotation.quotation_number} raised for inquiry {inquiry.inquiry_number} "
            f"({quotation.currency} {quotation.total_amount:.2f})"
        )
        return quotation
