"""Tests for operator authorization."""

from unittest.mock import MagicMock

import pytest
import requests

from tenant_migrator.auth import OperatorAuthorizer, SupabaseIdentityProvider, bearer_token
from tenant_migrator.exceptions import AuthorizationError
from tenant_migrator.stores.memory import InMemoryQueryClient

from tests.factories import FakeIdentityProvider


@pytest.fixture
def destination() -> InMemoryQueryClient:
    return InMemoryQueryClient(tables={
        "users": [
            {"id": "op-admin", "auth_user_id": "auth-admin"},
            {"id": "op-owner", "auth_user_id": "auth-owner"},
            {"id": "op-member", "auth_user_id": "auth-member"},
        ],
        "user_roles": [
            {"user_id": "op-admin", "role": "admin"},
            {"user_id": "op-owner", "role": "owner"},
            {"user_id": "op-member", "role": "member"},
        ],
    })


@pytest.fixture
def authorizer(destination) -> OperatorAuthorizer:
    return OperatorAuthorizer(destination, FakeIdentityProvider({
        "admin-token": "auth-admin",
        "owner-token": "auth-owner",
        "member-token": "auth-member",
        "orphan-token": "auth-nobody",
    }))


def assert_rejected(authorizer, header, status_code, message) -> None:
    with pytest.raises(AuthorizationError) as exc_info:
        authorizer.authorize(header)
    assert exc_info.value.status_code == status_code
    assert exc_info.value.message == message


class TestOperatorAuthorizer:
    @pytest.mark.parametrize("token, user_id", [("admin-token", "op-admin"), ("owner-token", "op-owner")])
    def test_allowed_roles(self, authorizer, token, user_id) -> None:
        operator = authorizer.authorize(f"Bearer {token}")
        assert operator.user_id == user_id

    def test_missing_header(self, authorizer) -> None:
        assert_rejected(authorizer, None, 401, "Authorization required")

    def test_unknown_token(self, authorizer) -> None:
        assert_rejected(authorizer, "Bearer stolen", 401, "Invalid authentication")

    def test_no_destination_user(self, authorizer) -> None:
        assert_rejected(authorizer, "Bearer orphan-token", 403, "User not found")

    def test_insufficient_role(self, authorizer) -> None:
        assert_rejected(authorizer, "Bearer member-token", 403, "Admin access required")

    def test_role_lookup_failure(self, authorizer, destination) -> None:
        destination.fail_selects("user_roles", "permission denied")
        assert_rejected(authorizer, "Bearer admin-token", 403, "Admin access required")


class TestBearerToken:
    @pytest.mark.parametrize("header, expected", [
        ("Bearer abc", "abc"),
        ("abc", "abc"),
        ("Bearer ", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, header, expected) -> None:
        assert bearer_token(header) == expected


class TestSupabaseIdentityProvider:
    def make_provider(self, response=None, error=None) -> SupabaseIdentityProvider:
        session = MagicMock()
        if error:
            session.get.side_effect = error
        else:
            session.get.return_value = response
        return SupabaseIdentityProvider("https://v2.example.supabase.co/", "anon-key", session=session)

    def test_resolves_user_id(self) -> None:
        response = MagicMock(status_code=200)
        response.json.return_value = {"id": "auth-admin", "email": "admin@x.com"}
        provider = self.make_provider(response)

        assert provider.resolve("tok") == "auth-admin"
        call = provider._session.get.call_args
        assert call.args[0] == "https://v2.example.supabase.co/auth/v1/user"
        assert call.kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_rejected_token(self) -> None:
        provider = self.make_provider(MagicMock(status_code=401))
        assert provider.resolve("tok") is None

    def test_transport_error(self) -> None:
        provider = self.make_provider(error=requests.exceptions.ConnectionError("refused"))
        assert provider.resolve("tok") is None
