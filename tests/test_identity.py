"""Tests for the identity provider client."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from site_analytics import identity as identity_module
from site_analytics.errors import AuthenticationError, IdentityProviderError, ValidationError
from site_analytics.identity import IdentityClient


def run_async(coro):
    return asyncio.run(coro)


@pytest.fixture()
def identity():
    return IdentityClient("https://auth.example.test/", "service-key")


def _respond(identity, status_code, body=None):
    identity._request = AsyncMock(return_value=httpx.Response(status_code, json=body))
    return identity._request


class TestSignIn:
    def test_success(self, identity):
        request = _respond(identity, 200, {
            "access_token": "jwt",
            "user": {"id": "user-1", "email": "owner@example.com"},
        })

        session = run_async(identity.sign_in("owner@example.com", "secret123"))

        assert session.token == "jwt"
        assert session.user.id == "user-1"
        args, kwargs = request.call_args
        assert args == ("POST", "/token")
        assert kwargs["params"] == {"grant_type": "password"}
        assert kwargs["json"] == {"email": "owner@example.com", "password": "secret123"}

    def test_rejected(self, identity):
        _respond(identity, 400, {"error": "invalid_grant"})

        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            run_async(identity.sign_in("owner@example.com", "wrong"))

    def test_provider_error(self, identity):
        _respond(identity, 503, {})

        with pytest.raises(IdentityProviderError):
            run_async(identity.sign_in("owner@example.com", "secret123"))


class TestSignUp:
    def test_success(self, identity):
        request = _respond(identity, 201, {"id": "user-2", "email": "new@example.com"})

        user = run_async(identity.sign_up("new@example.com", "secret123"))

        assert user.id == "user-2"
        assert request.call_args.args == ("POST", "/admin/users")
        assert request.call_args.kwargs["json"]["email_confirm"] is True

    def test_provider_message_is_surfaced(self, identity):
        _respond(identity, 422, {"msg": "A user with this email address has already been registered"})

        with pytest.raises(ValidationError, match="already been registered"):
            run_async(identity.sign_up("owner@example.com", "secret123"))


class TestGetUser:
    def test_valid_token(self, identity):
        request = _respond(identity, 200, {"id": "user-1", "email": "owner@example.com"})

        user = run_async(identity.get_user("jwt"))

        assert user.email == "owner@example.com"
        assert request.call_args.kwargs["token"] == "jwt"

    def test_invalid_token(self, identity):
        _respond(identity, 401, {"msg": "invalid JWT"})

        assert run_async(identity.get_user("expired")) is None

    def test_empty_token_skips_request(self, identity):
        request = _respond(identity, 200, {})

        assert run_async(identity.get_user("")) is None
        request.assert_not_called()


class TestRequest:
    def test_headers_and_url(self, identity, monkeypatch):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["apikey"] = request.headers["apikey"]
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"id": "user-1"})

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            identity_module.httpx,
            "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )

        run_async(identity.get_user("jwt"))

        assert seen["url"] == "https://auth.example.test/auth/v1/user"
        assert seen["apikey"] == "service-key"
        assert seen["auth"] == "Bearer jwt"

    def test_transport_error(self, identity, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            identity_module.httpx,
            "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )

        with pytest.raises(IdentityProviderError, match="unavailable"):
            run_async(identity.get_user("jwt"))
