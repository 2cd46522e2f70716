"""Pydantic models for rows read from the legacy (V1) store.

V1 rows are loosely shaped: columns were renamed over time and many are
nullable. These models only validate what the transforms rely on and keep
every other column as an extra attribute.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class LegacyRow(BaseModel):
    """Base for V1 rows; unknown columns are kept."""

    model_config = ConfigDict(extra="allow")

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)


class LegacyUser(LegacyRow):
    """A V1 ``users`` row."""

    email: str
    full_name: Optional[str] = None
    # Older rows split the name
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[Any] = None
    # Renamed from account_type to entity_type partway through V1
    entity_type: Optional[str] = None
    account_type: Optional[str] = None
    state: Optional[Any] = None
    tin: Optional[Any] = None
    nin: Optional[Any] = None
    bvn: Optional[Any] = None
    business_name: Optional[Any] = None
    cac_number: Optional[Any] = None
    onboarding_completed: Optional[Any] = None
    onboarding_step: Optional[Any] = None
    kyc_level: Optional[Any] = None
    verification_status: Optional[Any] = None
    created_at: Optional[Any] = None


class LegacyTransaction(LegacyRow):
    """A V1 ``transactions`` row."""

    user_id: Optional[str] = None
    external_id: Optional[str] = None
    # Free-form columns are carried verbatim, whatever their JSON type
    description: Optional[Any] = None
    narration: Optional[Any] = None  # Bank-feed rows use narration instead of description
    amount: Optional[Any] = None
    type: Optional[Any] = None
    date: Optional[Any] = None
    category: Optional[Any] = None
    source: Optional[Any] = None
    categorization_status: Optional[Any] = None
    metadata: Optional[Any] = None  # jsonb: object, array or scalar
    created_at: Optional[Any] = None

    @field_validator("user_id", "external_id", mode="before")
    @classmethod
    def _coerce_reference(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)
