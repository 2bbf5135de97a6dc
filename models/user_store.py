"""
User store: lookups by id or identity, and the single mutable session field
(users.refresh_token).

Writes are single UPDATE statements. Refresh rotation uses a conditional
UPDATE so that a stale token can never overwrite a newer one.
"""
from __future__ import annotations

import logging

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.user import User

logger = logging.getLogger(__name__)


class DuplicateIdentityError(Exception):
    """The store's unique constraint rejected a username or email."""


def normalize_identity(value: str | None) -> str | None:
    return value.strip().lower() if isinstance(value, str) else value


class UserStore:

    def __init__(self, storage: DBStorage):
        self._storage = storage

    @property
    def _session(self):
        return self._storage.get_session()

    def get_by_id(self, user_id: str) -> User | None:
        """Read the row as stored, overwriting any copy already in the session."""
        if not user_id:
            return None
        return self._session.get(User, str(user_id), populate_existing=True)

    def get_by_identity(self, username: str | None = None, email: str | None = None) -> User | None:
        """Match on username OR email, whichever are given."""
        conditions = []
        username = normalize_identity(username)
        email = normalize_identity(email)
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email)
        if not conditions:
            return None
        return self._session.query(User).filter(or_(*conditions)).populate_existing().first()

    def insert(self, user: User) -> User:
        user.username = normalize_identity(user.username)
        user.email = normalize_identity(user.email)
        self._storage.new(user)
        try:
            self._storage.save()
        except IntegrityError as exc:
            logger.info("Insert rejected by unique constraint for username=%s", user.username)
            raise DuplicateIdentityError(str(getattr(exc, "orig", exc))) from exc
        return user

    def _update(self, user_id: str, *criteria, **values) -> int:
        stmt = (
            update(User)
            .where(User.id == str(user_id), *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        self._storage.save()
        return result.rowcount

    def set_refresh_token(self, user_id: str, token: str | None) -> None:
        """Overwrite the stored refresh token; None clears the session."""
        self._update(user_id, refresh_token=token)

    def swap_refresh_token(self, user_id: str, expected: str, replacement: str) -> bool:
        """Compare-and-swap the stored refresh token.

        Returns False when the stored value no longer equals ``expected``.
        """
        return self._update(user_id, User.refresh_token == expected, refresh_token=replacement) == 1

    def set_password_hash(self, user_id: str, digest: str) -> None:
        self._update(user_id, password_hash=digest)

    def update_images(
        self,
        user_id: str,
        avatar_url: str | None = None,
        cover_image_url: str | None = None,
    ) -> User | None:
        values = {}
        if avatar_url is not None:
            values["avatar_url"] = avatar_url
        if cover_image_url is not None:
            values["cover_image_url"] = cover_image_url
        if values:
            self._update(user_id, **values)
        return self.get_by_id(user_id)
