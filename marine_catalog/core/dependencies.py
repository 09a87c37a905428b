"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for services and admin authorization.

Dependency Hierarchy:
--------------------
    ┌──────────────────────┐      ┌──────────────────────┐
    │ get_catalog_service  │      │  get_current_admin   │
    │  (app.state)         │      │  (Bearer JWT)        │
    └──────────────────────┘      └──────────┬───────────┘
                                             │
                                  ┌──────────▼───────────┐
                                  │    require_admin     │
                                  └──────────────────────┘

Usage Examples:
--------------
    @router.get("")
    async def list_products(service: CatalogService = Depends(get_catalog_service)):
        ...

    @router.delete("")
    async def delete_product(admin: dict = Depends(require_admin)):
        ...

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marine_catalog.core import exceptions
from marine_catalog.core.security import SecurityManager, get_security_manager
from marine_catalog.services.auth_service import AuthService
from marine_catalog.services.catalog_service import CatalogService


# Module logger
logger = logging.getLogger(__name__)

# HTTP Bearer security scheme for Swagger UI
security_scheme = HTTPBearer(auto_error=False)


class AuthenticationManager:
    """
    Token-based admin authentication.

    Attributes:
        _security: SecurityManager instance for token operations

    Example:
        >>> auth = AuthenticationManager(get_security_manager())
        >>> claims = auth.get_current_admin(credentials)
    """

    def __init__(self, security: SecurityManager) -> None:
        self._security = security

    def extract_token_from_header(
        self,
        credentials: Optional[HTTPAuthorizationCredentials]
    ) -> str:
        """
        Extract JWT token from HTTP Authorization header.

        Raises:
            AppException: If no credentials provided
        """
        if not credentials or not credentials.credentials:
            logger.debug("No authorization credentials provided")
            raise exceptions.token_invalid()

        return credentials.credentials

    def authenticate_from_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a token and return its claims.

        Raises:
            AppException: If token is invalid or expired
        """
        payload = self._security.verify_token(token)

        if not payload:
            raise exceptions.token_expired()

        if not payload.get("sub"):
            logger.warning("Token payload missing 'sub' claim")
            raise exceptions.token_invalid()

        return payload

    def get_current_admin(
        self,
        credentials: Optional[HTTPAuthorizationCredentials]
    ) -> Dict[str, Any]:
        token = self.extract_token_from_header(credentials)
        return self.authenticate_from_token(token)

    def require_admin(self, claims: Dict[str, Any]) -> Dict[str, Any]:
        """
        Require the admin role claim.

        Raises:
            AppException: If the token does not carry the admin role
        """
        if claims.get("role") != AuthService.ADMIN_ROLE:
            logger.warning(f"Role check failed for {claims.get('sub')}: {claims.get('role')}")
            raise exceptions.admin_required()

        return claims


# =============================================================================
# FASTAPI DEPENDENCY FUNCTIONS
# =============================================================================

def get_catalog_service(request: Request) -> CatalogService:
    """
    FastAPI dependency providing the catalog service built at startup.

    Raises:
        AppException: If the application has not finished starting
    """
    service = getattr(request.app.state, "catalog_service", None)
    if service is None:
        raise exceptions.internal_error("Catalog service not initialized")
    return service


def get_auth_service() -> AuthService:
    return AuthService(get_security_manager())


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme)
) -> Dict[str, Any]:
    """
    FastAPI dependency returning the verified token claims.

    Raises:
        AppException: If authentication fails
    """
    auth_manager = AuthenticationManager(get_security_manager())
    return auth_manager.get_current_admin(credentials)


async def require_admin(
    claims: Dict[str, Any] = Depends(get_current_admin)
) -> Dict[str, Any]:
    """
    FastAPI dependency requiring an admin token.

    Usage:
        @router.post("")
        async def create_product(admin: dict = Depends(require_admin)):
            ...
    """
    auth_manager = AuthenticationManager(get_security_manager())
    return auth_manager.require_admin(claims)
