"""
Authentication service: register, login, logout, refresh rotation and
password change.

Collaborators are injected, and every operation returns a Result so the HTTP
layer decides the status code. Only unexpected faults (database, I/O) raise.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from models.user import User
from models.user_store import DuplicateIdentityError, UserStore, normalize_identity
from utils.media import MediaUploader
from utils.results import ErrorKind, Result, failure
from utils.security import PasswordHasher
from utils.tokens import IssuedToken, TokenCodec, TokenKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access: IssuedToken
    refresh: IssuedToken


@dataclass(frozen=True)
class Session:
    user: User
    tokens: TokenPair


def _blank(value) -> bool:
    return not isinstance(value, str) or value.strip() == ""


def _same_token(presented: str, stored: str | None) -> bool:
    return hmac.compare_digest(presented.encode(), (stored or "").encode())


class AuthService:

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        uploader: MediaUploader,
    ):
        self._store = store
        self._hasher = hasher
        self._codec = codec
        self._uploader = uploader

    def _issue_pair(self, user: User) -> TokenPair:
        access = self._codec.issue_access(user.id, user.username, user.email, user.full_name)
        refresh = self._codec.issue_refresh(user.id)
        return TokenPair(access=access, refresh=refresh)

    def _discard_uploads(self, *urls: str | None) -> None:
        for url in urls:
            if url:
                self._uploader.remove(url)

    def register(
        self,
        full_name: str,
        email: str,
        username: str,
        password: str,
        avatar: str | None,
        cover_image: str | None = None,
    ) -> Result[User]:
        """
        Create an account. The avatar is mandatory and must upload to a remote
        URL; the cover image is optional.
        """
        if any(_blank(field) for field in (full_name, email, username, password)):
            return failure(ErrorKind.VALIDATION, "All fields are required")

        username = normalize_identity(username)
        email = normalize_identity(email)
        if self._store.get_by_identity(username=username, email=email):
            logger.info("Registration conflict for username=%s", username)
            return failure(ErrorKind.CONFLICT, "User with email or username already exists")

        if _blank(avatar):
            return failure(ErrorKind.VALIDATION, "Avatar file is required")

        password_hash = self._hasher.hash(password)

        avatar_url = self._uploader.upload(avatar)
        if not avatar_url:
            return failure(ErrorKind.VALIDATION, "Avatar file is required")
        cover_image_url = self._uploader.upload(cover_image) if cover_image else None

        user = User(
            full_name=full_name.strip(),
            email=email,
            username=username,
            password_hash=password_hash,
            avatar_url=avatar_url,
            cover_image_url=cover_image_url or "",
        )
        try:
            self._store.insert(user)
        except DuplicateIdentityError:
            self._discard_uploads(avatar_url, cover_image_url)
            return failure(ErrorKind.CONFLICT, "User with email or username already exists")

        created = self._store.get_by_id(user.id)
        if created is None:
            self._discard_uploads(avatar_url, cover_image_url)
            return failure(ErrorKind.INTERNAL, "Something went wrong while registering the user")
        logger.info("Registered user %s", created.id)
        return Result.success(created)

    def login(self, password: str, username: str | None = None, email: str | None = None) -> Result[Session]:
        if _blank(username) and _blank(email):
            return failure(ErrorKind.VALIDATION, "username or email is required")
        if _blank(password):
            return failure(ErrorKind.VALIDATION, "password is required")

        user = self._store.get_by_identity(username=username, email=email)
        if user is None:
            return failure(ErrorKind.NOT_FOUND, "User does not exist")

        if not self._hasher.verify(password, user.password_hash):
            logger.info("Failed login for user %s", user.id)
            return failure(ErrorKind.UNAUTHORIZED, "Invalid user credentials")

        if self._hasher.needs_rehash(user.password_hash):
            self._store.set_password_hash(user.id, self._hasher.hash(password))

        tokens = self._issue_pair(user)
        self._store.set_refresh_token(user.id, tokens.refresh.token)
        return Result.success(Session(user=user, tokens=tokens))

    def logout(self, user: User) -> Result[None]:
        """Revoke the session; calling it again is harmless."""
        self._store.set_refresh_token(user.id, None)
        return Result.success(None)

    def refresh(self, refresh_token: str | None) -> Result[Session]:
        """
        Exchange a refresh token for a new pair. The presented token must be
        the one currently stored, so a rotated-away token is refused even
        before it expires.
        """
        if _blank(refresh_token):
            return failure(ErrorKind.UNAUTHORIZED, "Unauthorized request")

        verified = self._codec.verify(refresh_token, TokenKind.REFRESH)
        if not verified.ok:
            logger.info("Refresh token rejected: %s", verified.error.value)
            return failure(ErrorKind.UNAUTHORIZED, "Invalid refresh token")

        user = self._store.get_by_id(verified.value.get("sub"))
        if user is None:
            logger.info("Refresh token for unknown user %s", verified.value.get("sub"))
            return failure(ErrorKind.UNAUTHORIZED, "Invalid refresh token")

        if not _same_token(refresh_token, user.refresh_token):
            logger.warning("Stale refresh token presented for user %s", user.id)
            return failure(ErrorKind.UNAUTHORIZED, "Refresh token is expired or used")

        tokens = self._issue_pair(user)
        if not self._store.swap_refresh_token(user.id, refresh_token, tokens.refresh.token):
            logger.warning("Lost refresh rotation race for user %s", user.id)
            return failure(ErrorKind.UNAUTHORIZED, "Refresh token is expired or used")
        return Result.success(Session(user=user, tokens=tokens))

    def change_password(self, user: User, old_password: str, new_password: str) -> Result[None]:
        # TODO: decide whether a password change should also clear refresh_token
        if _blank(old_password) or _blank(new_password):
            return failure(ErrorKind.VALIDATION, "oldPassword and newPassword are required")
        if not self._hasher.verify(old_password, user.password_hash):
            return failure(ErrorKind.UNAUTHORIZED, "Invalid old password")
        self._store.set_password_hash(user.id, self._hasher.hash(new_password))
        return Result.success(None)

    def _replace_image(self, user: User, reference: str | None, field: str, label: str) -> Result[User]:
        if _blank(reference):
            return failure(ErrorKind.VALIDATION, f"{label} file is missing")
        url = self._uploader.upload(reference)
        if not url:
            return failure(ErrorKind.VALIDATION, f"Error while uploading {label.lower()}")
        updated = self._store.update_images(user.id, **{field: url})
        if updated is None:
            return failure(ErrorKind.NOT_FOUND, "User does not exist")
        return Result.success(updated)

    def update_avatar(self, user: User, avatar: str | None) -> Result[User]:
        return self._replace_image(user, avatar, "avatar_url", "Avatar")

    def update_cover_image(self, user: User, cover_image: str | None) -> Result[User]:
        return self._replace_image(user, cover_image, "cover_image_url", "Cover image")
