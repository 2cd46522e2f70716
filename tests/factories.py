"""Row factories and fakes shared across tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from tenant_migrator.auth import IdentityProvider


def legacy_user(user_id: str, email: str, **fields: Any) -> Dict[str, Any]:
    row = {"id": user_id, "email": email, "created_at": "2023-01-01T00:00:00+00:00"}
    row.update(fields)
    return row


def legacy_transaction(tx_id: str, user_id: str, date: str = "2023-03-01", **fields: Any) -> Dict[str, Any]:
    row = {
        "id": tx_id,
        "user_id": user_id,
        "amount": 1500,
        "type": "debit",
        "date": date,
        "description": f"Payment {tx_id}",
    }
    row.update(fields)
    return row


def migrated_user(dest_id: str, email: str, legacy_id: str) -> Dict[str, Any]:
    return {"id": dest_id, "email": email, "migrated_from_v1": True, "v1_id": legacy_id}


class SteppingClock:
    """Returns a timestamp one second later on every call."""

    def __init__(self, start: Optional[datetime] = None, step: float = 1.0):
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = timedelta(seconds=step)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


class FakeIdentityProvider(IdentityProvider):
    def __init__(self, tokens: Optional[Dict[str, str]] = None):
        self.tokens = tokens or {}

    def resolve(self, token: str) -> Optional[str]:
        return self.tokens.get(token)
