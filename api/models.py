"""
API request and response schemas that are not domain records.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class RegisterRequest(BaseModel):
    """Registration payload; field checks happen in the identity service."""
    username: Optional[str] = Field(None, description="Unique user name")
    email: Optional[str] = Field(None, description="Unique email address")
    password: Optional[str] = Field(None, description="At least 6 characters")


class LoginRequest(BaseModel):
    email: Optional[str] = Field(None, description="Registered email address")
    password: Optional[str] = Field(None, description="Account password")


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing request."""
    error: str = Field(..., description="Error category")
    message: str = Field(..., description="Human readable message")
    detail: Optional[str] = Field(None, description="Debug detail, registration failures only")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


def to_payload(model: BaseModel, **kwargs) -> dict:
    """Dump a record as JSON-ready camelCase data."""
    return model.model_dump(mode="json", by_alias=True, **kwargs)
