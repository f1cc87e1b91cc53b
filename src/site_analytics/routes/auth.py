"""
Account endpoints. Credentials are handled by the identity provider.
"""

from fastapi import APIRouter, Header, HTTPException

from ..core.models import Credentials
from ..identity import IdentityClient
from .common import require_user

MIN_PASSWORD_LENGTH = 6


def _require_credentials(body: Credentials) -> tuple[str, str]:
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password required")
    return body.email, body.password


def create_auth_router(identity: IdentityClient) -> APIRouter:
    router = APIRouter(prefix="/auth", tags=["auth"])

    @router.post("/login")
    async def login(body: Credentials):
        """Exchange email/password for a bearer token."""
        email, password = _require_credentials(body)
        session = await identity.sign_in(email, password)
        return session.model_dump()

    @router.post("/signup", status_code=201)
    async def signup(body: Credentials):
        """Create an account."""
        email, password = _require_credentials(body)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            )
        user = await identity.sign_up(email, password)
        return {"user": user.model_dump()}

    @router.get("/me")
    async def me(authorization: str | None = Header(None)):
        user = await require_user(identity, authorization)
        return {"user": user.model_dump()}

    return router
