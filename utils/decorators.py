from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from utils.errors import Unauthorized
from utils.sessions import SessionManager


def session_manager() -> SessionManager:
    return current_app.extensions["session_manager"]


def jwt_required():
    """
    Require a valid bearer access token; exposes the subject as g.current_user_id.
    Failures propagate as AuthError and are mapped in api.errors.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            manager = session_manager()
            user_id = manager.authenticate(request.headers)
            if manager.users.get(user_id) is None:
                raise Unauthorized("user not found")
            g.current_user_id = user_id
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def api_key_required():
    """Service-to-service calls: ``Authorization: ApiKey <key>``."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            session_manager().authorize_service(request.headers)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
