"""
==============================================================================
Authentication Service Module
==============================================================================

Admin login and token issuance.

Authentication Flow:
-------------------
    ┌─────────────┐
    │   Login     │
    │  Request    │
    └──────┬──────┘
           │
    ┌──────▼──────┐     ┌─────────────┐
    │  Verify     │────▶│  Mismatch   │ → INVALID_CREDENTIALS
    │ Credentials │     └─────────────┘
    └──────┬──────┘
           │
    ┌──────▼──────┐
    │  Generate   │
    │   Token     │
    └─────────────┘

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

from marine_catalog.core import exceptions
from marine_catalog.core.security import SecurityManager, get_security_manager


# Module logger
logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service for the single admin account.

    Example:
        >>> auth_service = AuthService()
        >>> token = auth_service.authenticate("admin", "admin123")
    """

    ADMIN_ROLE = "admin"

    def __init__(self, security: Optional[SecurityManager] = None) -> None:
        """
        Initialize the authentication service.

        Args:
            security: Optional SecurityManager (uses singleton if None)
        """
        self._security = security or get_security_manager()

    def authenticate(self, username: str, password: str) -> str:
        """
        Verify admin credentials and issue an access token.

        Args:
            username: Submitted login name
            password: Plain text password

        Returns:
            Signed JWT access token

        Raises:
            AppException: INVALID_CREDENTIALS on any mismatch
        """
        normalized_username = username.strip()

        if not self._security.verify_credentials(normalized_username, password):
            logger.warning(f"Login failed for '{normalized_username}'")
            raise exceptions.invalid_credentials()

        token = self._security.create_access_token({
            "sub": normalized_username,
            "role": self.ADMIN_ROLE,
        })

        logger.info(f"✅ Admin authenticated: {normalized_username}")
        return token

    def get_token_expiry_seconds(self) -> int:
        """Get access token expiry in seconds."""
        return self._security.get_access_token_expire_seconds()
