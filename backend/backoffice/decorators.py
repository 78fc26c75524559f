# Overview: Route decorators; map service-layer errors onto JSON error responses.

from functools import wraps
from flask import current_app

from .validation import DomainError, TransactionFailedError


def handle_service_errors(action: str):
    """
    Translate service exceptions into ``{"error": ..., "details": ...}``
    responses using each error's status_code.

    DomainError subclasses carry their own status (400/404/409/500).
    Anything else is logged with the traceback and returned as a generic 500.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except TransactionFailedError as e:
                current_app.logger.exception("Failed to %s", action)
                return {"error": str(e), "details": e.details}, e.status_code
            except DomainError as e:
                return {"error": str(e), "details": e.details}, e.status_code
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return {"error": f"Failed to {action}"}, 500

        return decorated_function
    return decorator
