# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, jsonify
from sqlalchemy.orm.exc import StaleDataError

from .extensions import db
from .services.errors import (
    ConflictAbortError,
    InsufficientBalanceError,
    InsufficientStockError,
    InvalidAmountError,
    NotFoundError,
    PersistenceError,
    PosError,
)
from .validation import ConflictError, ValidationError

# Most specific first; PosError is the 400 fallback for other business errors.
ERROR_STATUS = (
    (NotFoundError, 404),
    (ConflictAbortError, 409),
    (InsufficientStockError, 400),
    (InsufficientBalanceError, 400),
    (InvalidAmountError, 400),
    (PersistenceError, 500),
    (PosError, 400),
)


def error_response(exc: PosError):
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return jsonify({"error": exc.message, "details": exc.details}), status
    return jsonify({"error": str(exc)}), 400


def handle_pos_errors(log_message: str):
    """
    Translate domain errors into JSON responses.

    - PosError subclasses -> {"error", "details"} with the mapped status
    - ValidationError -> 400, ConflictError -> 409
    - StaleDataError (version_id mismatch on commit) -> 409 conflict
    - anything else is logged with a traceback and answered with 500
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except PosError as e:
                return error_response(e)
            except ValidationError as e:
                return jsonify({"error": str(e)}), 400
            except ConflictError as e:
                return jsonify({"error": str(e)}), 409
            except StaleDataError as e:
                # A versioned row changed under a plain CRUD commit
                db.session.rollback()
                current_app.logger.warning("%s: concurrent update (%s)", log_message, e)
                return error_response(ConflictAbortError(
                    "The record was changed by another update. Please reload and retry.",
                    details={"cause": e.__class__.__name__},
                ))
            except Exception:
                current_app.logger.exception(log_message)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function
    return decorator
