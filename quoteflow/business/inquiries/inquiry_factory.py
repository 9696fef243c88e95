"""
Inquiry Factory
Validates customer submissions and creates inquiries with their parts and files
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from pathlib import PurePath

from flask import current_app

from quoteflow import db
from quoteflow.business.core.persistence import commit
from quoteflow.data.core.sequence_generator import SequenceGenerator
from quoteflow.data.inquiries import Inquiry, InquiryFile, InquiryPart
from quoteflow.errors import ConcurrencyConflict, DependencyFailure, PersistenceFailure, ValidationError
from quoteflow.integrations import get_integrations
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.inquiries.factory")

ALLOWED_EXTENSIONS = ('.pdf', '.dwg', '.dxf', '.zip', '.xlsx', '.xls')
ADDRESS_FIELDS = ('street', 'city', 'state', 'country', 'zipCode')


@dataclass
class UploadedFile:
    """A file received with a request, before it reaches the file store."""
    filename: str
    data: bytes
    content_type: str | None = None

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower()


def parse_parts(raw_parts) -> list[InquiryPart]:
    """
    Validate the part list of a submission.

    Each part needs a material, a thickness and a whole quantity of at least one.
    """
    if not isinstance(raw_parts, list) or not raw_parts:
        raise ValidationError("At least one part is required")

    parts = []
    errors = {}
    for index, raw in enumerate(raw_parts):
        if not isinstance(raw, dict):
            errors[f"parts[{index}]"] = "must be an object"
            continue
        material = str(raw.get('material') or '').strip()
        thickness = str(raw.get('thickness') or '').strip()
        try:
            quantity = int(raw.get('quantity'))
        except (TypeError, ValueError):
            quantity = 0
        if not material:
            errors[f"parts[{index}].material"] = "is required"
        if not thickness:
            errors[f"parts[{index}].thickness"] = "is required"
        if quantity < 1:
            errors[f"parts[{index}].quantity"] = "must be at least 1"
        parts.append(InquiryPart(
            position=index,
            part_ref=raw.get('partRef') or f"PART-{index + 1}",
            material=material,
            thickness=thickness,
            grade=raw.get('grade'),
            quantity=quantity,
            remarks=raw.get('remarks'),
        ))
    if errors:
        raise ValidationError("Invalid parts", details=errors)
    return parts


def parse_address(raw) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("Delivery address must be an object")
    return {field: (str(raw[field]).strip() if raw.get(field) else None) for field in ADDRESS_FIELDS}


def parse_date(value, field: str) -> date | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date", details={field: value})


def store_files(inquiry: Inquiry, uploads: list[UploadedFile]) -> list[InquiryFile]:
    """
    Push uploads to the file store and attach their metadata to ``inquiry``.

    Limits come from MAX_FILES_PER_INQUIRY and MAX_FILE_SIZE_MB. Nothing is
    stored when any upload is rejected.
    """
    if not uploads:
        return []
    config = current_app.config
    max_files = config['MAX_FILES_PER_INQUIRY']
    max_bytes = config['MAX_FILE_SIZE_MB'] * 1024 * 1024

    if len(inquiry.files) + len(uploads) > max_files:
        raise ValidationError(f"An inquiry can hold at most {max_files} files")
    for upload in uploads:
        if upload.extension not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                f"File type not allowed: {upload.filename}",
                details={"allowed": list(ALLOWED_EXTENSIONS)},
            )
        if len(upload.data) > max_bytes:
            raise ValidationError(f"File too large: {upload.filename} (max {config['MAX_FILE_SIZE_MB']}MB)")

    store = get_integrations().files
    created = []
    for upload in uploads:
        try:
            locator = store.store(upload.data, {"folder": "inquiries", "filename": upload.filename})
        except DependencyFailure:
            discard_files([record.locator for record in created], inquiry.inquiry_number)
            raise
        record = InquiryFile(
            original_name=upload.filename,
            stored_name=locator.rsplit('/', 1)[-1],
            size=len(upload.data),
            file_type=upload.extension.lstrip('.'),
            locator=locator,
        )
        inquiry.files.append(record)
        created.append(record)
    return created


def discard_files(locators: list[str], inquiry_number: str | None) -> None:
    """Remove stored uploads whose inquiry rows were never written or were deleted."""
    store = get_integrations().files
    for locator in locators:
        if not locator:
            continue
        try:
            store.delete(locator)
        except OSError as e:
            logger.warning(f"Could not remove {locator} for inquiry {inquiry_number}: {e}")


class InquiryFactory:
    """Creates inquiries for customers"""

    @staticmethod
    def create(customer, data: dict, uploads: list[UploadedFile] | None = None) -> Inquiry:
        """
        Create an inquiry in ``pending``.

        Args:
            customer: the submitting user
            data: parts, deliveryAddress, specialInstructions, expectedDeliveryDate, customerNotes
            uploads: optional drawings

        Raises:
            ValidationError: invalid parts, address, date or files
        """
        parts = parse_parts(data.get('parts'))
        address = parse_address(data.get('deliveryAddress'))
        expected = parse_date(data.get('expectedDeliveryDate'), 'expectedDeliveryDate')

        # numbering first; a failed counter rolls back the session
        inquiry_number = SequenceGenerator.generate_id_or_fallback("inquiry")

        inquiry = Inquiry(
            inquiry_number=inquiry_number,
            customer_id=customer.id,
            status='pending',
            special_instructions=data.get('specialInstructions'),
            expected_delivery_date=expected,
            customer_notes=data.get('customerNotes'),
            created_by_id=customer.id,
            updated_by_id=customer.id,
        )
        inquiry.delivery_address = address
        inquiry.parts = parts
        stored = [record.locator for record in store_files(inquiry, uploads or [])]

        db.session.add(inquiry)
        try:
            commit("create inquiry")
        except (PersistenceFailure, ConcurrencyConflict):
            discard_files(stored, inquiry_number)
            raise
        logger.info(
            f"Inquiry {inquiry.inquiry_number} created by user {customer.id} "
            f"({len(parts)} parts, {len(inquiry.files)} files)"
        )
        return inquiry
