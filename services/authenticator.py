"""
Request authenticator: resolves the user behind an access token.

The credential is read from the ``accessToken`` cookie, falling back to an
``Authorization: Bearer <token>`` header.
"""
from __future__ import annotations

import logging

from models.user import User
from models.user_store import UserStore
from utils.results import ErrorKind, Result, failure
from utils.tokens import TokenCodec, TokenKind

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
BEARER_PREFIX = "Bearer "


def extract_access_token(request) -> str | None:
    """Cookie first, then the Authorization header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    if auth.startswith(BEARER_PREFIX):
        return auth[len(BEARER_PREFIX):].strip() or None
    return None


class RequestAuthenticator:

    def __init__(self, store: UserStore, codec: TokenCodec):
        self._store = store
        self._codec = codec

    def authenticate(self, request) -> Result[User]:
        token = extract_access_token(request)
        if not token:
            return failure(ErrorKind.UNAUTHORIZED, "Unauthorized request")

        verified = self._codec.verify(token, TokenKind.ACCESS)
        if not verified.ok:
            logger.info("Access token rejected: %s", verified.error.value)
            return failure(ErrorKind.UNAUTHORIZED, "Invalid Access Token")

        user = self._store.get_by_id(verified.value.get("sub"))
        if user is None:
            # same answer as a bad token, so ids cannot be probed
            logger.info("Access token for unknown user %s", verified.value.get("sub"))
            return failure(ErrorKind.UNAUTHORIZED, "Invalid Access Token")
        return Result.success(user)
