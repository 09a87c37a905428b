"""
==============================================================================
Core Package
==============================================================================

Core utilities and infrastructure for the application.

Modules:
--------
- exceptions: AppException class and error factory functions
- security: SecurityManager for credential checks and JWT tokens
- dependencies: FastAPI dependency injection functions (import directly,
  it depends on the services layer)

Usage:
------
    from marine_catalog.core import exceptions
    raise exceptions.product_not_found("automation-1718000000000")

==============================================================================
"""

from .exceptions import (
    AppException,
    register_exception_handlers,
)
from .security import SecurityManager, get_security_manager

__all__ = [
    "AppException",
    "register_exception_handlers",
    "SecurityManager",
    "get_security_manager",
]
