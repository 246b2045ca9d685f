"""
User registration, login and token renewal.
"""

import re
from typing import Optional

import structlog
from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

from tracker.errors import AuthError, ConflictError, NotFoundError, ServerError, ValidationError
from tracker.models import Identity, User
from tracker.repositories import UserRepository

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


class AuthSession(BaseModel):
    """A user together with a freshly issued bearer token."""
    user: User
    token: str


class IdentityService:
    """
    Registers and authenticates users.

    Token signing and password hashing are injected so the service never
    touches the signing secret directly.
    """

    def __init__(self, users: UserRepository, tokens, hasher, debug: bool = False):
        """
        Args:
            users: User repository
            tokens: Object with ``issue(user_id, email) -> str``
            hasher: Object with ``hash(password)`` and ``verify(password, hashed)``
            debug: Expose persistence error details on failed registrations
        """
        self.users = users
        self.tokens = tokens
        self.hasher = hasher
        self.debug = debug

    async def register(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> AuthSession:
        username = (username or "").strip()
        email = (email or "").strip().lower()

        if not username or not email or not password:
            raise ValidationError("Username, email and password are required")

        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Please enter a valid email address")

        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        if await self.users.find_by_email(email):
            raise ConflictError("This email address is already registered")

        if await self.users.find_by_username(username):
            raise ConflictError("This username is already taken")

        password_hash = self.hasher.hash(password)

        try:
            user = await self.users.insert(username, email, password_hash)
        except DuplicateKeyError:
            # Lost a race against a concurrent registration
            raise ConflictError("This email address or username is already registered")
        except Exception as e:
            logger.error("Failed to persist new user", username=username, error=str(e))
            raise ServerError(
                "An error occurred during user registration",
                detail=str(e) if self.debug else None,
            )

        logger.info("User registered", user_id=user.id)
        return AuthSession(user=user, token=self.tokens.issue(user.id, user.email))

    async def login(self, email: Optional[str], password: Optional[str]) -> AuthSession:
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = await self.users.find_by_email(email.strip())
        if not user:
            logger.warning("Login failed", reason="user_not_found")
            raise AuthError()

        if not self.hasher.verify(password, user.password_hash):
            logger.warning("Login failed", reason="password_mismatch", user_id=user.id)
            raise AuthError()

        logger.info("User logged in", user_id=user.id)
        return AuthSession(user=user, token=self.tokens.issue(user.id, user.email))

    async def get_current_user(self, identity: Identity) -> User:
        user = await self.users.find_by_id(identity.user_id)
        if not user:
            raise NotFoundError("The logged-in user no longer exists")
        return user

    async def refresh(self, identity: Identity) -> str:
        user = await self.get_current_user(identity)
        return self.tokens.issue(user.id, user.email)
