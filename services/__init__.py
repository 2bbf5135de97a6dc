"""
Authentication services.

- AuthService: register, login, logout, refresh rotation, password change
- RequestAuthenticator: resolves the user behind an access token
"""

from .auth_service import AuthService, Session, TokenPair
from .authenticator import RequestAuthenticator, extract_access_token

__all__ = [
    "AuthService",
    "Session",
    "TokenPair",
    "RequestAuthenticator",
    "extract_access_token",
]
