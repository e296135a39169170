from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app

from utils.exceptions import TokenInvalid
from utils.security import ACCESS


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                abort(401, description="Missing or invalid Authorization header")
            token = auth.split(" ", 1)[1].strip()
            codec = current_app.extensions["token_codec"]
            try:
                claims = codec.verify(token, ACCESS)
            except TokenInvalid:
                abort(401, description="Invalid or expired access token")

            g.current_claims = claims
            g.current_user_id = claims.user_id
            g.current_user_role = claims.role
            return fn(*args, **kwargs)

        return wrapper

    return decorator

def roles_required(required_roles: list[str]):
    """
    Allow access if the token's role is one of the required roles.
    """
    req = set(required_roles or [])
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if g.current_user_role not in req:
                abort(403, description="Insufficient role")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
