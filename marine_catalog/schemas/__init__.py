"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas for the API layer.

==============================================================================
"""

from .common import MessageResponse
from .auth import LoginRequest, LoginResponse

__all__ = [
    "MessageResponse",
    "LoginRequest",
    "LoginResponse",
]
