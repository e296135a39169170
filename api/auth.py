"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me
- GET  /auth/admin/ping (admin only)

Handlers stay thin: AuthService owns hashing, token issuance and rotation;
errors bubble up to api/errors.py as AuthError subclasses.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from services.auth import AuthService
from utils.decorators import jwt_required, roles_required

bp = Blueprint("auth", __name__)


def _service() -> AuthService:
    return current_app.extensions["auth_service"]


def _json_body() -> dict:
    # anything but a JSON object reaches the schemas as empty input
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@bp.post("/register")
def register():
    """
    register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      409:
        description: User already exists
      422:
        description: Validation error
    """
    payload = _json_body()
    user_id = _service().register(payload.get("email"), payload.get("password"))
    return jsonify({"data": {"user_id": user_id}}), 201


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
    """
    payload = _json_body()
    pair = _service().login(payload.get("email"), payload.get("password"))
    return jsonify(pair.to_dict()), 200


@bp.post("/refresh")
def refresh():
    """
    Use refresh token to obtain new access and refresh tokens (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns a new token pair)
      401:
        description: Invalid refresh token, or session revoked
    """
    payload = _json_body()
    pair = _service().refresh(payload.get("refresh_token"))
    return jsonify(pair.to_dict()), 200


@bp.post("/logout")
def logout():
    """
    logout: revokes the given refresh token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      204:
        description: ""
    """
    payload = _json_body()
    refresh_token = payload.get("refresh_token")
    if refresh_token:
        _service().logout(refresh_token)
    return ("", 204)


@bp.get("/me")
@jwt_required()
def me():
    """
    Claims of the current access token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    claims = g.current_claims
    return jsonify(
        {
            "data": {
                "user_id": claims.user_id,
                "role": claims.role,
                "expires_at": claims.expires_at.isoformat(),
            }
        }
    ), 200


@bp.get("/admin/ping")
@roles_required(["admin"])
def admin_ping():
    """
    Admin-only liveness check
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      403:
        description: Insufficient role
    """
    return jsonify({"status": "ok"}), 200
