"""Operator authorization for triggering a migration."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from .exceptions import AuthorizationError, StoreError
from .models.record import SelectQuery
from .stores.base import QueryClient

logger = logging.getLogger(__name__)

ALLOWED_ROLES = ("admin", "owner")


@dataclass
class Operator:
    """An authenticated operator allowed to run migrations."""
    auth_user_id: str
    user_id: str  # Destination users.id
    roles: List[str] = field(default_factory=list)


class IdentityProvider(ABC):
    """Resolves a bearer token to an auth user id."""

    @abstractmethod
    def resolve(self, token: str) -> Optional[str]:
        """Return the auth user id, or None if the token is not valid."""
        pass


class SupabaseIdentityProvider(IdentityProvider):
    """Resolves tokens against the destination project's ``/auth/v1/user``."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    def resolve(self, token: str) -> Optional[str]:
        try:
            response = self._session.get(
                f"{self.base_url}/auth/v1/user",
                headers={"apikey": self.api_key, "Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Token lookup failed: {e}")
            return None

        if response.status_code != 200:
            return None

        try:
            data = response.json()
        except ValueError:
            return None
        return data.get("id") if isinstance(data, dict) else None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an Authorization header value."""
    if not authorization:
        return None
    if authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return authorization.strip() or None


class OperatorAuthorizer:
    """
    Gates a migration run on the caller's identity and role.

    The operator must map to a destination ``users`` row through
    ``auth_user_id`` and hold an ``admin`` or ``owner`` role in
    ``user_roles``.
    """

    def __init__(self, destination: QueryClient, identity_provider: IdentityProvider):
        self.destination = destination
        self.identity_provider = identity_provider

    def authorize(self, authorization: Optional[str]) -> Operator:
        """
        Authorize the caller.

        Args:
            authorization: Raw Authorization header value

        Raises:
            AuthorizationError: 401 for missing or invalid credentials,
                403 for unknown operators or insufficient role
        """
        token = bearer_token(authorization)
        if not token:
            raise AuthorizationError("Authorization required", status_code=401)

        auth_user_id = self.identity_provider.resolve(token)
        if not auth_user_id:
            raise AuthorizationError("Invalid authentication", status_code=401)

        try:
            user = self.destination.lookup_one("users", {"auth_user_id": auth_user_id}, columns="id")
            if not user:
                raise AuthorizationError("User not found", status_code=403)

            roles = self.destination.select(
                "user_roles",
                SelectQuery(columns="role", filters={"user_id": user["id"], "role": list(ALLOWED_ROLES)}),
            )
        except StoreError as e:
            logger.error(f"Role lookup failed: {e.message}")
            raise AuthorizationError("Admin access required", status_code=403) from e

        if not roles:
            raise AuthorizationError("Admin access required", status_code=403)

        operator = Operator(
            auth_user_id=auth_user_id,
            user_id=str(user["id"]),
            roles=[r["role"] for r in roles],
        )
        logger.info(f"Authorized operator {operator.user_id} ({', '.join(operator.roles)})")
        return operator
