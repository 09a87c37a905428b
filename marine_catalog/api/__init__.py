"""
==============================================================================
API Package
==============================================================================

Routers:
--------
- health: Health check endpoints (/api/health)
- admin: Login and product catalog endpoints (/api/admin)

==============================================================================
"""
