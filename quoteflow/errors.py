"""
Error taxonomy for the quote-to-order workflows and the JSON handlers that
render it.
"""
from __future__ import annotations

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.errors")


class QuoteFlowError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.details:
            body["errors"] = self.details
        return body


class ValidationError(QuoteFlowError):
    status_code = 400
    default_message = "Validation failed"


class Unauthenticated(QuoteFlowError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(QuoteFlowError):
    status_code = 403
    default_message = "Access denied"


class NotFound(QuoteFlowError):
    status_code = 404
    default_message = "Not found"


class InvalidTransition(QuoteFlowError):
    status_code = 400
    default_message = "Invalid status transition"

    def __init__(self, entity_type: str, from_status: str | None, to_status: str, message: str | None = None):
        self.entity_type = entity_type
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message or f"Invalid status transition for {entity_type}: {from_status} -> {to_status}",
            details={"from": from_status, "to": to_status},
        )


class AmountMismatch(QuoteFlowError):
    status_code = 400
    default_message = "Payment amount does not match quotation total"


class ConcurrencyConflict(QuoteFlowError):
    status_code = 409
    default_message = "The record was changed by another request"


class DependencyFailure(QuoteFlowError):
    status_code = 502
    default_message = "An external service failed"


class PersistenceFailure(QuoteFlowError):
    status_code = 500
    default_message = "Could not save changes"


def register_error_handlers(app):
    """Render every error as ``{"success": false, "message": ...}``."""

    @app.errorhandler(QuoteFlowError)
    def handle_quoteflow_error(error: QuoteFlowError):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        else:
            logger.info(f"{type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error: SQLAlchemyError):
        from quoteflow import db
        db.session.rollback()
        logger.error(f"Database error: {error}", exc_info=True)
        return jsonify(PersistenceFailure().to_dict()), PersistenceFailure.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        logger.error(f"Unhandled error: {error}", exc_info=True)
        body = {"success": False, "message": "Internal server error"}
        if app.config.get("DEBUG"):
            body["error"] = str(error)
        return jsonify(body), 500
