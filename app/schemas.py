"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming data validation
- Response models for API responses

Every API response uses the same envelope: success, message, and an
optional data payload. Message fields are serialized in camelCase
(userId, createdAt) to match what dashboard clients consume.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Pydantic Request Models
# =============================================================================

class SendMessageRequest(BaseModel):
    """
    Body of POST /api/users/{user_id}/messages.

    Fields are optional here on purpose: presence and emptiness are checked
    by MessageService so a missing field yields 400 "Missing required fields".
    """
    recipient: Optional[str] = Field(
        None,
        description="Destination phone number"
    )
    content: Optional[str] = Field(
        None,
        description="Message body"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "recipient": "15551234567",
                    "content": "hello"
                }
            ]
        }
    }


class CredentialsRequest(BaseModel):
    """Body of POST /api/auth/register and POST /api/auth/session."""
    email: str = Field(..., min_length=3, max_length=320, description="Email address")
    password: str = Field(..., min_length=8, description="Password (at least 8 characters)")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Require local@domain; store lower-cased."""
        v = v.strip().lower()
        local, sep, domain = v.partition("@")
        if not sep or not local or "." not in domain or domain.startswith(".") or domain.endswith("."):
            raise ValueError("Invalid email address")
        return v


# =============================================================================
# Pydantic Response Models
# =============================================================================

class MessageResponse(BaseModel):
    """A stored message as returned by the API."""
    id: str = Field(..., description="Unique message identifier")
    recipient: str = Field(..., description="Destination phone number")
    content: str = Field(..., description="Message body")
    status: str = Field(..., description="Lifecycle tag, always 'sent'")
    user_id: str = Field(..., alias="userId", description="Owning user")
    created_at: datetime = Field(..., alias="createdAt", description="Creation time (UTC)")

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,  # Allow creating from ORM objects
    }


class SessionUserResponse(BaseModel):
    """A user together with a freshly issued session token."""
    id: str
    email: str
    created_at: datetime = Field(..., alias="createdAt")
    token: str = Field(..., description="Bearer token for the Authorization header")

    model_config = {"populate_by_name": True}


class ApiResponse(BaseModel):
    """Response envelope shared by every API endpoint."""
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: Optional[Any] = Field(None, description="Payload or error details")


class MessageEnvelope(ApiResponse):
    data: MessageResponse


class MessagesListEnvelope(ApiResponse):
    data: list[MessageResponse] = Field(default_factory=list)


class SessionUserEnvelope(ApiResponse):
    data: SessionUserResponse


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
