"""Route decorators for error handling and authentication.

This module provides reusable decorators to reduce boilerplate in route handlers.
"""
import functools
import logging
from typing import Callable

from flask import request

from jobnest_server.exception.errors import AuthenticationFailure, MessagingError
from jobnest_server.security.authentication import get_auth_identity
from jobnest_server.utils.helpers import respond_error

logger = logging.getLogger(__name__)


def handle_errors(func: Callable) -> Callable:
    """Decorator to turn messaging errors into JSON error responses.

    Catches:
    - AuthenticationFailure -> 401
    - ValidationFailure -> 400
    - PersistenceFailure -> 503
    - Other exceptions -> 500

    Usage:
        @bp.route('/example')
        @handle_errors
        def example_route():
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AuthenticationFailure as e:
            logger.warning("Unauthorized: %s", e)
            return respond_error(str(e), status=e.status)
        except MessagingError as e:
            logger.warning("%s in %s: %s", type(e).__name__, func.__name__, e)
            return respond_error(str(e), status=e.status)
        except Exception:
            logger.exception("Unexpected error in %s", func.__name__)
            return respond_error('Server error', status=500)
    return wrapper


def require_auth(func: Callable) -> Callable:
    """Decorator to require authentication and inject the caller's identity.

    The decorated function receives `identity` (a UserIdentity) as a keyword argument.

    Usage:
        @bp.route('/protected')
        @require_auth
        def protected_route(identity):
            user_id = identity.user_id
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        kwargs['identity'] = get_auth_identity(request)
        return func(*args, **kwargs)
    return wrapper


def log_request(func: Callable) -> Callable:
    """Decorator to log request details."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.info("%s %s called", request.method, request.path)
        return func(*args, **kwargs)
    return wrapper


def protected_route(func: Callable) -> Callable:
    """Composite decorator: handle_errors + require_auth + log_request."""
    return handle_errors(require_auth(log_request(func)))
