from __future__ import annotations

from flask import Blueprint, request, g, current_app

from models.schemas.user import UserOutSchema
from utils.decorators import jwt_required
from utils.media import stash_upload, discard

from .dependencies import get_services
from .responses import api_response, failure_response

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()


@bp.get("/current-user")
@jwt_required()
def current_user():
    """
    Get current user info
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return api_response(user_out_schema.dump(g.current_user), "Current user fetched successfully")


def _replace_image(field: str, update):
    path = stash_upload(request.files.get(field), current_app.config["UPLOAD_TMP_DIR"])
    try:
        result = update(g.current_user, path)
    finally:
        discard(path)
    if not result.ok:
        return failure_response(result.error)
    return api_response(user_out_schema.dump(result.value), "Image updated successfully")


@bp.patch("/avatar")
@jwt_required()
def update_avatar():
    """
    Replace the current user's avatar
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: avatar, type: file, required: true }
    responses:
      200: { description: OK }
      400: { description: Missing or failed upload }
      401: { description: Unauthorized }
    """
    return _replace_image("avatar", get_services().auth.update_avatar)


@bp.patch("/cover-image")
@jwt_required()
def update_cover_image():
    """
    Replace the current user's cover image
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: coverImage, type: file, required: true }
    responses:
      200: { description: OK }
      400: { description: Missing or failed upload }
      401: { description: Unauthorized }
    """
    return _replace_image("coverImage", get_services().auth.update_cover_image)
