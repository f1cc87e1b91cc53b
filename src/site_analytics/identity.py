"""
Client for the external identity provider.

Accounts live in a GoTrue-compatible auth server (Supabase Auth and friends).
This service never stores credentials; it forwards them and resolves bearer
tokens back to users.
"""
import logging
from typing import Optional

import httpx

from .core.models import AuthSession, User
from .errors import AuthenticationError, IdentityProviderError, ValidationError

logger = logging.getLogger(__name__)


class IdentityClient:
    """Thin async wrapper over the GoTrue REST API."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self, token: Optional[str] = None) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(
                    method,
                    f"{self.base_url}/auth/v1{path}",
                    headers=self._headers(token),
                    params=params,
                    json=json,
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider request to {path} failed: {e}")
            raise IdentityProviderError("Identity provider unavailable") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return (
            body.get("msg")
            or body.get("message")
            or body.get("error_description")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )

    @staticmethod
    def _user(data: dict) -> User:
        return User(id=data["id"], email=data.get("email"))

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Exchange email/password for an access token."""
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code >= 500:
            logger.error(f"Identity provider error on sign-in: {response.status_code}")
            raise IdentityProviderError("Identity provider error")
        if response.status_code != 200:
            raise AuthenticationError("Invalid credentials")

        data = response.json()
        return AuthSession(token=data["access_token"], user=self._user(data["user"]))

    async def sign_up(self, email: str, password: str) -> User:
        """Create a confirmed account through the admin API."""
        response = await self._request(
            "POST",
            "/admin/users",
            json={"email": email, "password": password, "email_confirm": True},
        )
        if response.status_code >= 500:
            logger.error(f"Identity provider error on sign-up: {response.status_code}")
            raise IdentityProviderError("Identity provider error")
        if response.status_code not in (200, 201):
            raise ValidationError(self._error_message(response))

        return self._user(response.json())

    async def get_user(self, token: str) -> Optional[User]:
        """Resolve a bearer token to its user, or None if it is not valid."""
        if not token:
            return None

        response = await self._request("GET", "/user", token=token)
        if response.status_code >= 500:
            logger.error(f"Identity provider error on token lookup: {response.status_code}")
            raise IdentityProviderError("Identity provider error")
        if response.status_code != 200:
            return None

        return self._user(response.json())
