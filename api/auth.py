"""
Bearer token authentication for the FastAPI API.

Provides token signing/verification, password hashing and the dependency that
resolves the caller's identity for every protected route.
"""

from datetime import datetime, timedelta

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from api.config import APIConfig
from tracker.errors import AuthRequiredError, InvalidTokenError, TokenExpiredError
from tracker.models import Identity

logger = structlog.get_logger(__name__)

# Missing or non-Bearer headers are reported by get_current_identity, not by FastAPI
security = HTTPBearer(auto_error=False)


class TokenManager:
    """Issues and verifies signed tokens carrying ``userId`` and ``email``."""

    def __init__(self, config: APIConfig):
        self.secret_key = config.secret_key
        self.algorithm = config.algorithm
        self.expires_delta = timedelta(minutes=config.access_token_expire_minutes)

    def issue(self, user_id: str, email: str) -> str:
        claims = {
            "userId": user_id,
            "email": email,
            "exp": datetime.utcnow() + self.expires_delta,
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        """
        Decode a token into the caller identity.

        Raises:
            TokenExpiredError: The token is past its expiry
            InvalidTokenError: Any other signature or claim problem
        """
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.warning("Invalid token presented", error=str(e))
            raise InvalidTokenError()

        user_id = claims.get("userId")
        email = claims.get("email")
        if not user_id or not email:
            raise InvalidTokenError()
        return Identity(user_id=user_id, email=email)


class PasswordHasher:
    """One-way password hashing."""

    def __init__(self):
        self.context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        return self.context.verify(password, hashed)


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Identity:
    """
    Resolve the caller from the ``Authorization: Bearer`` header.

    Raises:
        AuthRequiredError: No bearer token was sent
        TokenExpiredError / InvalidTokenError: The token failed verification
    """
    if credentials is None or not credentials.credentials:
        raise AuthRequiredError()

    tokens: TokenManager = request.app.state.services.tokens
    return tokens.verify(credentials.credentials)
