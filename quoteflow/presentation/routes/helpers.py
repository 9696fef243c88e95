"""Request parsing shared by the JSON blueprints."""
from __future__ import annotations

import json
from datetime import datetime, timezone

from flask import request

from quoteflow.business.inquiries.inquiry_factory import UploadedFile
from quoteflow.business.notifications.dispatcher import SideEffectDispatcher
from quoteflow.errors import ValidationError
from quoteflow.services.pagination import pagination_dict


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        if request.form:
            return request.form.to_dict()
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def form_or_json() -> dict:
    """
    JSON body, or a multipart form whose JSON-looking fields are decoded.

    Multipart submissions carry structured fields (parts, deliveryAddress)
    as JSON strings next to the uploaded files.
    """
    if request.is_json:
        return json_body()
    data = {}
    for key, value in request.form.items():
        if value and value.strip()[:1] in ('[', '{'):
            try:
                data[key] = json.loads(value)
                continue
            except ValueError:
                raise ValidationError(f"{key} is not valid JSON")
        data[key] = value
    return data


def uploaded_files(field: str = 'files') -> list[UploadedFile]:
    uploads = []
    for storage in request.files.getlist(field):
        if not storage or not storage.filename:
            continue
        uploads.append(UploadedFile(storage.filename, storage.read(), storage.mimetype))
    return uploads


def parse_id(value, field: str) -> int:
    """Positive whole-number id from a request body."""
    try:
        entity_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number", details={field: value})
    if entity_id < 1 or (isinstance(value, float) and value != entity_id):
        raise ValidationError(f"{field} must be a positive whole number", details={field: value})
    return entity_id


def parse_datetime(value, field: str, *, required: bool = False) -> datetime | None:
    if not value:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date or datetime", details={field: value})
    # stored naive in UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def dispatch_event(event_kind: str, entity_id: int, context: dict | None = None) -> None:
    SideEffectDispatcher.get().dispatch(event_kind, entity_id, context)


def page_payload(key: str, page, extra: dict | None = None) -> dict:
    payload = {
        'success': True,
        key: [item.to_dict() for item in page.items],
        'pagination': pagination_dict(page),
    }
    if extra:
        payload.update(extra)
    return payload
