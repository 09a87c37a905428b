"""
==============================================================================
Admin Authentication Endpoints
==============================================================================

Admin panel login.

==============================================================================
"""

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from marine_catalog.core.dependencies import get_auth_service
from marine_catalog.schemas.auth import LoginRequest, LoginResponse
from marine_catalog.services.auth_service import AuthService


router = APIRouter(tags=["Authentication"])


class AuthController:
    """Controller for authentication operations."""

    def __init__(self, service: AuthService):
        self._service = service

    def login(self, request: LoginRequest) -> LoginResponse:
        """Authenticate the admin and issue a token."""
        token = self._service.authenticate(request.username, request.password)

        return LoginResponse(
            token=token,
            expires_in=self._service.get_token_expiry_seconds(),
        )


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Authenticate the admin and get a bearer token."""
    controller = AuthController(service)
    return await run_in_threadpool(controller.login, request)
