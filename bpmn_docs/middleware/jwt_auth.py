"""
JWT Auth Middleware — parses a JWT from the request, sets g.jwt_*.

Token sources, first match wins:
  1. Authorization: Bearer <token>
  2. ``token`` cookie (set by the web front end after login)

An invalid or expired token is not rejected here; it simply leaves
g.jwt_user_id / g.jwt_role unset. Routes that need a role use
``admin_required``.
"""

import functools
import logging

import jwt as pyjwt
from flask import g, request

from bpmn_docs.services.jwt_service import decode_access_token
from bpmn_docs.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def _token_from_request():
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.cookies.get("token")


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_role = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        token = _token_from_request()
        if not token:
            return

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired JWT on %s", path)
            return
        except pyjwt.InvalidTokenError:
            logger.debug("Invalid JWT on %s", path)
            return
        g.jwt_user_id = payload.get("sub")
        g.jwt_role = payload.get("role")


def admin_required(fn):
    """Reject the request with 401 unless the JWT carries role=admin."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "jwt_role", None) != "admin":
            return api_error(E.UNAUTHORIZED, "Unauthorized")
        return fn(*args, **kwargs)

    return wrapper
