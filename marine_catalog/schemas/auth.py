"""
==============================================================================
Authentication Schemas Module
==============================================================================

Request and response schemas for the admin login endpoint.

==============================================================================
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Login credentials."""
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Token response after authentication."""
    success: bool = Field(default=True)
    token: str
    token_type: str = Field(default="bearer")
    expires_in: int
    message: str = Field(default="Login successful")
