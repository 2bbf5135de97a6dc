"""
Authentication blueprint (mounted under /api/v1/users):
- POST /register
- POST /login
- POST /logout
- POST /refresh-token
- POST /change-password

Tokens go out both as http-only cookies (accessToken / refreshToken) and in
the response body for clients that do not keep cookies.
"""
from __future__ import annotations

from flask import Blueprint, request, g, current_app

from models.schemas.user import (
    RegisterSchema,
    LoginSchema,
    RefreshSchema,
    ChangePasswordSchema,
    UserOutSchema,
)
from services.auth_service import Session
from services.authenticator import ACCESS_COOKIE
from utils.decorators import jwt_required
from utils.media import stash_upload, discard

from .dependencies import get_services
from .responses import api_response, failure_response

REFRESH_COOKIE = "refreshToken"

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()


def _payload() -> dict:
    """JSON body, or form fields for multipart/urlencoded requests."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config["COOKIE_SECURE"],
        "samesite": current_app.config["COOKIE_SAMESITE"],
    }


def _session_response(session: Session, message: str):
    tokens = session.tokens
    response, status = api_response(
        {
            "user": user_out_schema.dump(session.user),
            "accessToken": tokens.access.token,
            "refreshToken": tokens.refresh.token,
        },
        message,
    )
    opts = _cookie_options()
    response.set_cookie(ACCESS_COOKIE, tokens.access.token, max_age=tokens.access.max_age, **opts)
    response.set_cookie(REFRESH_COOKIE, tokens.refresh.token, max_age=tokens.refresh.max_age, **opts)
    return response, status


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - multipart/form-data
      - application/json
    parameters:
      - { in: formData, name: fullName, type: string, required: true }
      - { in: formData, name: email, type: string, required: true }
      - { in: formData, name: username, type: string, required: true }
      - { in: formData, name: password, type: string, required: true }
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: coverImage, type: file }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: Username or email already registered
    """
    data = register_schema.load(_payload())

    tmp_dir = current_app.config["UPLOAD_TMP_DIR"]
    stashed = [
        stash_upload(request.files.get("avatar"), tmp_dir),
        stash_upload(request.files.get("coverImage"), tmp_dir),
    ]
    avatar = stashed[0] or data.get("avatar")
    cover_image = stashed[1] or data.get("cover_image")

    try:
        result = get_services().auth.register(
            full_name=data["full_name"],
            email=data["email"],
            username=data["username"],
            password=data["password"],
            avatar=avatar,
            cover_image=cover_image,
        )
    finally:
        for path in stashed:
            discard(path)

    if not result.ok:
        return failure_response(result.error)
    return api_response(user_out_schema.dump(result.value), "User registered successfully", 201)


@bp.post("/login")
def login():
    """
    Login with username or email: returns accessToken and refreshToken
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
             username: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (tokens in body and http-only cookies)
      401:
        description: Invalid credentials
      404:
        description: User does not exist
    """
    data = login_schema.load(_payload())
    result = get_services().auth.login(
        password=data["password"],
        username=data.get("username"),
        email=data.get("email"),
    )
    if not result.ok:
        return failure_response(result.error)
    return _session_response(result.value, "User logged in successfully")


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: clears the stored refresh token and the token cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    get_services().auth.logout(g.current_user)
    response, status = api_response({}, "User logged out")
    opts = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **opts)
    response.delete_cookie(REFRESH_COOKIE, **opts)
    return response, status


@bp.post("/refresh-token")
def refresh_token():
    """
    Rotate the refresh token: returns a brand-new token pair
    The refresh token is read from the refreshToken cookie, else from the body.
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
             refreshToken: { type: string }
    responses:
      200:
        description: New tokens
      401:
        description: Missing, invalid, expired or already used refresh token
    """
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        token = refresh_schema.load(_payload()).get("refresh_token")
    result = get_services().auth.refresh(token)
    if not result.ok:
        return failure_response(result.error)
    return _session_response(result.value, "Access token refreshed")


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the current user's password
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             oldPassword: { type: string }
             newPassword: { type: string }
    responses:
      200:
        description: Password changed
      401:
        description: Wrong old password
    """
    data = change_password_schema.load(_payload())
    result = get_services().auth.change_password(
        g.current_user, data["old_password"], data["new_password"]
    )
    if not result.ok:
        return failure_response(result.error)
    return api_response({}, "Password changed successfully")
