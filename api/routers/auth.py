"""
Registration, login and session endpoints.
"""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.auth import get_current_identity
from api.dependencies import Services, get_services
from api.models import LoginRequest, RegisterRequest, to_payload
from tracker.errors import ServerError, TrackerError
from tracker.models import Identity

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, services: Services = Depends(get_services)):
    """
    Create an account and return it with a bearer token.

    - **username**: Unique user name
    - **email**: Unique email address (case-insensitive)
    - **password**: At least 6 characters
    """
    try:
        session = await services.identity.register(payload.username, payload.email, payload.password)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={
                "message": "User registered successfully",
                "user": to_payload(session.user),
                "token": session.token,
            }
        )
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Registration failed", error=str(e))
        raise ServerError("An error occurred during user registration")


@router.post("/login")
async def login(payload: LoginRequest, services: Services = Depends(get_services)):
    try:
        session = await services.identity.login(payload.email, payload.password)
        return {
            "message": "Login successful",
            "user": to_payload(session.user),
            "token": session.token,
        }
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Login failed", error=str(e))
        raise ServerError("An error occurred during login")


@router.post("/logout")
async def logout(identity: Identity = Depends(get_current_identity)):
    """Tokens are stateless; the client discards its copy."""
    logger.info("User logged out", user_id=identity.user_id)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def me(
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        user = await services.identity.get_current_user(identity)
        return {"user": to_payload(user)}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to load current user", user_id=identity.user_id, error=str(e))
        raise ServerError("Failed to retrieve user information")


@router.post("/refresh")
async def refresh(
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        token = await services.identity.refresh(identity)
        return {"message": "Token refreshed successfully", "token": token}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Token refresh failed", user_id=identity.user_id, error=str(e))
        raise ServerError("Failed to refresh token")
