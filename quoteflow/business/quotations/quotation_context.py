from __future__ import annotations

from datetime import datetime

from quoteflow import db
from quoteflow.business.core.persistence import commit
from quoteflow.business.core.status_validator import QuotationStatusValidator
from quoteflow.business.inquiries.inquiry_context import InquiryContext
from quoteflow.business.orders.status_manager import StatusChange
from quoteflow.business.quotations.quotation_factory import parse_items, parse_number
from quoteflow.data.quotations import Quotation
from quoteflow.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from quoteflow.integrations import get_integrations
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.quotations.context")


class QuotationContext:
    """
    Business wrapper around a single quotation.

    Status moves go through QuotationStatusValidator events; the linked
    inquiry follows acceptance and rejection in the same commit.
    """

    def __init__(self, quotation_id: int):
        self.quotation_id = quotation_id
        self._quotation = None

    @property
    def quotation(self) -> Quotation:
        if self._quotation is None:
            self._quotation = db.session.get(Quotation, self.quotation_id)
            if self._quotation is None:
                raise NotFound("Quotation not found")
        return self._quotation

    def check_access(self, user) -> Quotation:
        if not user.is_back_office and self.quotation.customer_id != user.id:
            raise Forbidden("Access denied")
        return self.quotation

    def _move(self, event: str, actor_id: int | None) -> StatusChange:
        quotation = self.quotation
        old_status = quotation.status
        target = QuotationStatusValidator.target_for(event, old_status)
        quotation.status = target
        quotation.updated_at = datetime.utcnow()
        if actor_id is not None:
            quotation.updated_by_id = actor_id
        logger.info(f"Quotation {quotation.quotation_number}: {old_status} -> {target}")
        return StatusChange("quotation", quotation.id, old_status, target)

    def send(self, *, actor_id: int | None = None) -> StatusChange:
        change = self._move("send", actor_id)
        self.quotation.sent_at = datetime.utcnow()
        commit("send quotation")
        return change

    def _follow_on_inquiry(self, status: str, actor_id: int | None) -> None:
        inquiry_context = InquiryContext(self.quotation.inquiry_id)
        try:
            inquiry_context.set_status(status, actor_id=actor_id)
        except NotFound:
            logger.warning(f"Inquiry {self.quotation.inquiry_id} for quotation "
                           f"{self.quotation.quotation_number} no longer exists")

    def accept(self, customer) -> StatusChange:
        self._require_owner(customer)
        change = self._move("accept", customer.id)
        self.quotation.accepted_at = datetime.utcnow()
        self._follow_on_inquiry("accepted", customer.id)
        commit("accept quotation")
        return change

    def reject(self, customer, reason: str | None) -> StatusChange:
        self._require_owner(customer)
        if not reason or not str(reason).strip():
            raise ValidationError("A rejection reason is required")
        change = self._move("reject", customer.id)
        self.quotation.rejected_at = datetime.utcnow()
        self.quotation.rejection_reason = str(reason).strip()
        self._follow_on_inquiry("rejected", customer.id)
        commit("reject quotation")
        return change

    def respond(self, customer, action: str, reason: str | None = None) -> StatusChange:
        if action == "accept":
            return self.accept(customer)
        if action == "reject":
            return self.reject(customer, reason)
        raise ValidationError("Action must be accept or reject")

    def _require_owner(self, customer) -> None:
        if self.quotation.customer_id != customer.id:
            raise NotFound("Quotation not found")

    def update_pricing(self, data: dict, *, actor_id: int | None = None) -> Quotation:
        """Back-office edits of items, total, validity and terms before the customer accepts."""
        quotation = self.quotation
        if quotation.status not in QuotationStatusValidator.PRE_ACCEPTANCE:
            raise InvalidTransition("quotation", quotation.status, quotation.status,
                                    message=f"A {quotation.status} quotation cannot be edited")

        if 'items' in data:
            quotation.items = parse_items(data['items'])
        if data.get('totalAmount') is not None:
            quotation.total_amount = parse_number(data['totalAmount'], 'totalAmount')
        elif 'items' in data and quotation.items:
            quotation.total_amount = round(sum(item.total_price for item in quotation.items), 2)
        if data.get('validUntil'):
            try:
                quotation.valid_until = datetime.fromisoformat(str(data['validUntil']))
            except ValueError:
                raise ValidationError("validUntil must be an ISO date")
        for field in ('terms', 'notes'):
            if field in data:
                setattr(quotation, field, data[field])

        quotation.updated_at = datetime.utcnow()
        if actor_id is not None:
            quotation.updated_by_id = actor_id
        commit("update quotation")
        return quotation

    def attach_pdf(self, data: bytes, filename: str, *, actor_id: int | None = None) -> Quotation:
        quotation = self.quotation
        if quotation.status not in QuotationStatusValidator.PRE_ACCEPTANCE:
            raise ValidationError(f"Cannot attach a PDF to a {quotation.status} quotation")
        if not filename.lower().endswith('.pdf'):
            raise ValidationError("Only PDF files can be attached to a quotation")

        store = get_integrations().files
        old_locator = quotation.pdf_locator
        quotation.pdf_locator = store.store(data, {"folder": "quotations", "filename": filename})
        if quotation.status in ("draft", "created"):
            quotation.status = "uploaded"
        quotation.updated_at = datetime.utcnow()
        if actor_id is not None:
            quotation.updated_by_id = actor_id
        commit("attach quotation pdf")

        if old_locator:
            store.delete(old_locator)
        logger.info(f"PDF attached to quotation {quotation.quotation_number}")
        return quotation

    def read_pdf(self) -> bytes:
        if not self.quotation.pdf_locator:
            raise NotFound("No PDF attached to this quotation")
        return get_integrations().files.retrieve(self.quotation.pdf_locator)
