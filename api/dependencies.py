"""
Service wiring.

create_app() builds one ServiceContainer per app and stores it on
app.extensions; handlers reach it through get_services().
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from models.db_storage import DBStorage
from models.user_store import UserStore
from services.auth_service import AuthService
from services.authenticator import RequestAuthenticator
from utils.media import LocalMediaUploader
from utils.security import PasswordHasher
from utils.tokens import TokenCodec

EXTENSION_KEY = "services"


@dataclass
class ServiceContainer:
    storage: DBStorage
    users: UserStore
    hasher: PasswordHasher
    codec: TokenCodec
    uploader: LocalMediaUploader
    auth: AuthService
    authenticator: RequestAuthenticator


def build_services(config) -> ServiceContainer:
    """Construct every collaborator from a Flask config mapping.

    Raises ConfigurationError when a token secret is missing.
    """
    codec = TokenCodec(
        access_secret=config.get("ACCESS_TOKEN_SECRET"),
        refresh_secret=config.get("REFRESH_TOKEN_SECRET"),
        access_ttl=config["ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
        algorithm=config["JWT_ALGORITHM"],
        issuer=config.get("JWT_ISSUER"),
    )
    storage = DBStorage(config["DATABASE_URL"], echo=config.get("SQL_ECHO", False))
    storage.reload()
    users = UserStore(storage)
    hasher = PasswordHasher(
        time_cost=config["ARGON2_TIME_COST"],
        memory_cost=config["ARGON2_MEMORY_COST"],
        parallelism=config["ARGON2_PARALLELISM"],
    )
    uploader = LocalMediaUploader(config["MEDIA_ROOT"], config["MEDIA_BASE_URL"])
    return ServiceContainer(
        storage=storage,
        users=users,
        hasher=hasher,
        codec=codec,
        uploader=uploader,
        auth=AuthService(users, hasher, codec, uploader),
        authenticator=RequestAuthenticator(users, codec),
    )


def init_services(app: Flask) -> ServiceContainer:
    services = build_services(app.config)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> ServiceContainer:
    return current_app.extensions[EXTENSION_KEY]
