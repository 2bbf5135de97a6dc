from flask import current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging

from .responses import error_response


def _flatten(messages) -> list:
    """marshmallow messages ({field: [msg]}) -> [{"field": f, "message": m}]"""
    if not isinstance(messages, dict):
        return [{"message": str(messages)}]
    errors = []
    for field, msgs in messages.items():
        for msg in msgs if isinstance(msgs, list) else [msgs]:
            errors.append({"field": field, "message": msg if isinstance(msg, str) else str(msg)})
    return errors


def register_error_handlers(app):
    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        if current_app and current_app.debug:
            logging.debug("Validation failed: %s", err.messages)
        return error_response("Invalid input", 400, errors=_flatten(err.messages))

    # Unique constraints that slipped past the service checks
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        logging.warning("Integrity error: %s", getattr(err, "orig", err))
        return error_response("Resource already exists", 409)

    # Werkzeug HTTPExceptions (404, 405, 413 ...) map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.description or err.name, err.code or 400)

    # 500 Internal Error (catch-all); details go to the log, never the body
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logging.exception("Unhandled exception", exc_info=err)
        return error_response("Something went wrong", 500)
