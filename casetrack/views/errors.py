"""
Error handlers for the Case & Report Tracker.

Every error leaves the application as JSON in the same envelope the API
uses for successful calls.
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException

from casetrack.utils.logging_config import get_logger
from casetrack.utils.validators import ValidationError


def error_response(status: int, error: str, details=None):
    body = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return jsonify(body), status


def register_error_handlers(app):
    """Register error handlers with the Flask app"""
    logger = get_logger("errors")

    @app.errorhandler(ValidationError)
    def validation_error(error):
        logger.info(
            "Validation failed",
            extra={"event": "validation_failed", "field": error.field, "code": error.code},
        )
        return error_response(400, "Validation failed", error.to_dict())

    @app.errorhandler(400)
    def bad_request_error(error):
        return error_response(400, "Bad request", getattr(error, "description", None))

    @app.errorhandler(401)
    def unauthorized_error(error):
        return error_response(401, "Authentication required")

    @app.errorhandler(404)
    def not_found_error(error):
        return error_response(404, "Not found")

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return error_response(405, "Method not allowed")

    @app.errorhandler(500)
    def internal_error(error):
        return error_response(500, "Internal server error")

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        if isinstance(e, HTTPException):
            return error_response(e.code or 500, e.name)
        logger.error(
            "Unhandled exception",
            extra={"event": "unhandled_exception", "error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        return error_response(500, "Internal server error")
