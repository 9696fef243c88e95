from __future__ import annotations

from datetime import datetime

from quoteflow import db
from quoteflow.business.core.persistence import commit
from quoteflow.business.core.status_validator import InquiryStatusValidator
from quoteflow.business.inquiries.inquiry_factory import (
    UploadedFile,
    discard_files,
    parse_address,
    parse_date,
    parse_parts,
    store_files,
)
from quoteflow.data.inquiries import Inquiry, InquiryFile
from quoteflow.data.quotations import Quotation
from quoteflow.errors import ConcurrencyConflict, Forbidden, NotFound, PersistenceFailure, ValidationError
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.inquiries.context")


class InquiryContext:
    """
    Business wrapper around a single inquiry.

    Customers may edit while the inquiry is pending, reviewed or quoted and
    delete while it is pending. Back office may edit until an order exists.
    """

    def __init__(self, inquiry_id: int):
        self.inquiry_id = inquiry_id
        self._inquiry = None

    @property
    def inquiry(self) -> Inquiry:
        if self._inquiry is None:
            self._inquiry = db.session.get(Inquiry, self.inquiry_id)
            if self._inquiry is None:
                raise NotFound("Inquiry not found")
        return self._inquiry

    def check_access(self, user) -> Inquiry:
        if not user.is_back_office and self.inquiry.customer_id != user.id:
            raise Forbidden("Access denied")
        return self.inquiry

    @property
    def quotation(self) -> Quotation | None:
        return Quotation.query.filter_by(inquiry_id=self.inquiry_id).first()

    def _replace_parts(self, raw_parts) -> None:
        inquiry = self.inquiry
        inquiry.parts = parse_parts(raw_parts)

    def update_by_customer(self, customer, data: dict) -> Inquiry:
        inquiry = self.inquiry
        if inquiry.customer_id != customer.id:
            raise NotFound("Inquiry not found")
        if inquiry.status not in Inquiry.CUSTOMER_EDITABLE_STATUSES:
            raise ValidationError(f"Inquiry cannot be modified once it is {inquiry.status}")

        if 'parts' in data:
            self._replace_parts(data['parts'])
        if 'deliveryAddress' in data:
            inquiry.delivery_address = parse_address(data['deliveryAddress'])
        if 'specialInstructions' in data:
            inquiry.special_instructions = data['specialInstructions']
        if 'expectedDeliveryDate' in data:
            inquiry.expected_delivery_date = parse_date(data['expectedDeliveryDate'], 'expectedDeliveryDate')
        if 'customerNotes' in data:
            inquiry.customer_notes = data['customerNotes']

        inquiry.updated_by_id = customer.id
        inquiry.updated_at = datetime.utcnow()
        commit("update inquiry")
        logger.info(f"Inquiry {inquiry.inquiry_number} updated by customer {customer.id}")
        return inquiry

    def update_by_back_office(self, user, data: dict) -> Inquiry:
        inquiry = self.inquiry
        quotation = self.quotation
        if quotation is not None and quotation.status == "order_created":
            raise ValidationError("Inquiry cannot be modified after an order has been created")

        if 'parts' in data:
            self._replace_parts(data['parts'])
        if 'backofficeNotes' in data:
            inquiry.backoffice_notes = data['backofficeNotes']
        if 'specialInstructions' in data:
            inquiry.special_instructions = data['specialInstructions']

        inquiry.updated_by_id = user.id
        inquiry.updated_at = datetime.utcnow()
        commit("update inquiry")
        logger.info(f"Inquiry {inquiry.inquiry_number} updated by {user.role} {user.id}")
        return inquiry

    def set_status(self, new_status: str, *, actor_id: int | None = None) -> tuple[str, str]:
        """Move the inquiry along its lifecycle. Does not commit."""
        if new_status not in Inquiry.STATUSES:
            raise ValidationError(f"Unknown inquiry status: {new_status}")
        inquiry = self.inquiry
        old_status = inquiry.status
        InquiryStatusValidator.check(old_status, new_status)
        if old_status != new_status:
            inquiry.status = new_status
            inquiry.updated_at = datetime.utcnow()
            if actor_id is not None:
                inquiry.updated_by_id = actor_id
            logger.info(f"Inquiry {inquiry.inquiry_number}: {old_status} -> {new_status}")
        return old_status, new_status

    def mark_reviewed(self, user) -> Inquiry:
        """Opening a pending inquiry for review."""
        if self.inquiry.status == "pending":
            self.set_status("reviewed", actor_id=user.id)
            commit("review inquiry")
        return self.inquiry

    def add_files(self, user, uploads: list[UploadedFile]) -> list[InquiryFile]:
        inquiry = self.check_access(user)
        if not uploads:
            raise ValidationError("No files uploaded")
        if not user.is_back_office and inquiry.status not in Inquiry.CUSTOMER_EDITABLE_STATUSES:
            raise ValidationError(f"Files cannot be added once the inquiry is {inquiry.status}")
        created = store_files(inquiry, uploads)
        stored = [record.locator for record in created]
        number = inquiry.inquiry_number
        inquiry.updated_at = datetime.utcnow()
        try:
            commit("upload inquiry files")
        except (PersistenceFailure, ConcurrencyConflict):
            discard_files(stored, number)
            raise
        logger.info(f"{len(created)} file(s) added to inquiry {inquiry.inquiry_number}")
        return created

    def delete_by_customer(self, customer) -> None:
        inquiry = self.inquiry
        if inquiry.customer_id != customer.id:
            raise NotFound("Inquiry not found")
        if inquiry.status != "pending":
            raise ValidationError("Only pending inquiries can be deleted")

        locators = [f.locator for f in inquiry.files if f.locator]
        number = inquiry.inquiry_number
        db.session.delete(inquiry)
        commit("delete inquiry")

        discard_files(locators, number)
        logger.info(f"Inquiry {number} deleted by customer {customer.id}")
