from __future__ import annotations
from functools import wraps
from flask import request, g

from api.dependencies import get_services
from api.responses import failure_response


def jwt_required():
    """Require a valid access token; the resolved user lands on g.current_user."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            authenticator = get_services().authenticator
            result = authenticator.authenticate(request)
            if not result.ok:
                return failure_response(result.error)
            g.current_user = result.value
            return fn(*args, **kwargs)

        return wrapper

    return decorator
