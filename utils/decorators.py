from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from api.errors import Unauthorized
from models import storage, user_store
from utils.cookies import ACCESS_COOKIE
from utils.tokens import decode_access


def jwt_required():
    """Require a valid access-token cookie.

    Sets g.current_user (the User row) and g.current_user_id.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = request.cookies.get(ACCESS_COOKIE)
            if not token:
                raise Unauthorized()
            claims = decode_access(
                token, current_app.config["JWT_SECRET"], current_app.config["JWT_ALGORITHM"]
            )

            user = user_store.find_by_id(storage.get_session(), claims.sub)
            if not user:
                raise Unauthorized()
            g.current_user = user
            g.current_user_id = user.id
            return fn(*args, **kwargs)

        return wrapper

    return decorator
