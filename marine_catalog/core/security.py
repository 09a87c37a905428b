"""
==============================================================================
Security Module - Authentication & Cryptography
==============================================================================

Security management for the admin panel: credential checks and JWT tokens.

This module implements:
- SecurityManager: Singleton class for all security operations
- Admin credential verification (passlib, pbkdf2_sha256)
- JWT access token generation and verification (python-jose)

Token Structure:
---------------
{
    "sub": "admin",               # Subject (admin username)
    "role": "admin",              # Role claim
    "type": "access",             # Token type
    "exp": 1234567890,            # Expiration timestamp
    "iat": 1234567890             # Issued at timestamp
}

==============================================================================
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from marine_catalog.config import Settings, get_settings


# Module logger
logger = logging.getLogger(__name__)


class SecurityManager:
    """
    Centralized security manager for authentication operations.

    Attributes:
        _pwd_context: Passlib context for password hashing
        _settings: Application settings reference
        _admin_hash: Hash the admin password is verified against

    Example:
        >>> security = SecurityManager()
        >>> security.verify_credentials("admin", "admin123")
        True
        >>> token = security.create_access_token({"sub": "admin"})
        >>> security.verify_token(token)["sub"]
        'admin'
    """

    # =========================================================================
    # CLASS CONSTANTS
    # =========================================================================

    TOKEN_TYPE_ACCESS = "access"

    HASH_SCHEMES = ["pbkdf2_sha256"]
    HASH_DEPRECATED = "auto"

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """
        Initialize the security manager.

        Args:
            settings: Optional settings (uses singleton if None)
        """
        self._pwd_context = CryptContext(
            schemes=self.HASH_SCHEMES,
            deprecated=self.HASH_DEPRECATED
        )
        self._settings = settings or get_settings()

        # A configured hash wins over the plain development password
        self._admin_hash = (
            self._settings.admin_password_hash
            or self._pwd_context.hash(self._settings.admin_password)
        )

        logger.debug("SecurityManager initialized")

    # =========================================================================
    # CREDENTIAL METHODS
    # =========================================================================

    def hash_password(self, plain_password: str) -> str:
        """Hash a password with the configured passlib scheme."""
        return self._pwd_context.hash(plain_password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a plain password against a passlib hash.

        Returns:
            True if password matches, False otherwise (including bad hashes)
        """
        try:
            return self._pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning(f"Password verification error: {e}")
            return False

    def verify_credentials(self, username: str, password: str) -> bool:
        """
        Check a username/password pair against the configured admin account.

        Args:
            username: Submitted login name
            password: Submitted plain password

        Returns:
            True if both match
        """
        username_ok = hmac.compare_digest(
            username.encode("utf-8"),
            self._settings.admin_username.encode("utf-8")
        )
        password_ok = self.verify_password(password, self._admin_hash)
        return username_ok and password_ok

    # =========================================================================
    # JWT TOKEN METHODS
    # =========================================================================

    def create_access_token(
        self,
        data: Dict[str, Any],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create a JWT access token.

        Args:
            data: Payload data (must include 'sub')
            expires_delta: Custom expiration time (optional)

        Returns:
            Encoded JWT access token string
        """
        payload = data.copy()

        now = datetime.now(timezone.utc)
        expire = now + (
            expires_delta
            or timedelta(minutes=self._settings.access_token_expire_minutes)
        )

        payload.update({
            "type": self.TOKEN_TYPE_ACCESS,
            "exp": expire,
            "iat": now
        })

        encoded_token = jwt.encode(
            payload,
            self._settings.jwt_secret_key,
            algorithm=self._settings.jwt_algorithm
        )

        logger.debug(f"Created access token, expires: {expire.isoformat()}")

        return encoded_token

    def verify_token(
        self,
        token: str,
        token_type: str = TOKEN_TYPE_ACCESS
    ) -> Optional[Dict[str, Any]]:
        """
        Verify and decode a JWT token.

        Validates signature, expiration and token type.

        Returns:
            Decoded payload dictionary if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.jwt_secret_key,
                algorithms=[self._settings.jwt_algorithm]
            )

            if payload.get("type") != token_type:
                logger.warning(
                    f"Token type mismatch: expected {token_type}, "
                    f"got {payload.get('type')}"
                )
                return None

            return payload

        except jwt.ExpiredSignatureError:
            logger.debug("Token verification failed: token expired")
            return None

        except JWTError as e:
            logger.warning(f"Token verification failed: {e}")
            return None

    def get_access_token_expire_seconds(self) -> int:
        """Get access token expiration time in seconds."""
        return self._settings.access_token_expire_seconds


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_security_manager() -> SecurityManager:
    """
    Get the global SecurityManager instance (singleton pattern).

    Returns:
        Global SecurityManager instance
    """
    return SecurityManager()
