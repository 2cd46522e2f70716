"""Transforms from legacy (V1) rows to destination (V2) rows.

Each transform is a pure function of its inputs. Fallback rules are applied
in the order listed in each docstring; a falsy legacy value (None, "", 0)
falls through to the next alternative.
"""

import logging
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from ..models.legacy import LegacyTransaction, LegacyUser
from ..models.record import LEGACY_ID, PROVENANCE_FLAG

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_TYPE = "individual"
DEFAULT_ONBOARDING_STEP = 1
DEFAULT_KYC_LEVEL = 0
DEFAULT_DESCRIPTION = "No description"
DEFAULT_TRANSACTION_SOURCE = "migrated"
DEFAULT_CATEGORIZATION_STATUS = "pending"


def coalesce(*values: Any, default: Any = None) -> Any:
    """Return the first truthy value, or default."""
    for value in values:
        if value:
            return value
    return default


def full_name_for(user: LegacyUser) -> Optional[str]:
    """
    Resolve the display name.

    1. ``full_name``
    2. ``first_name`` and ``last_name`` joined by a space
    3. None
    """
    if user.full_name:
        return user.full_name
    joined = f"{user.first_name or ''} {user.last_name or ''}".strip()
    return joined or None


def account_type_for(user: LegacyUser) -> str:
    """``entity_type``, then ``account_type``, then "individual"."""
    return coalesce(user.entity_type, user.account_type, default=DEFAULT_ACCOUNT_TYPE)


def transform_user(
    user: LegacyUser,
    now: Optional[datetime] = None,
    preserve_id: bool = True
) -> Dict[str, Any]:
    """
    Map a V1 user onto the V2 ``users`` shape.

    Args:
        user: Validated legacy row
        now: Timestamp written to ``updated_at`` (defaults to current UTC time)
        preserve_id: Carry the V1 primary key over as the V2 primary key

    Returns:
        Row ready for insertion, stamped with provenance columns
    """
    now = now or datetime.now(timezone.utc)

    row: Dict[str, Any] = {
        "email": user.email,
        "full_name": full_name_for(user),
        "phone": user.phone,
        "account_type": account_type_for(user),
        "state": user.state,
        "tin": user.tin,
        "nin": user.nin,
        "bvn": user.bvn,
        "business_name": user.business_name,
        "cac_number": user.cac_number,
        "onboarding_complete": coalesce(user.onboarding_completed, default=False),
        "onboarding_step": coalesce(user.onboarding_step, default=DEFAULT_ONBOARDING_STEP),
        "kyc_level": coalesce(user.kyc_level, default=DEFAULT_KYC_LEVEL),
        "verification_status": user.verification_status,
        "created_at": user.created_at,
        "updated_at": now.isoformat(),
        PROVENANCE_FLAG: True,
        LEGACY_ID: user.id,
    }
    if preserve_id:
        row = {"id": user.id, **row}
    return row


def transform_transaction(tx: LegacyTransaction, owner_id: str) -> Dict[str, Any]:
    """
    Map a V1 transaction onto the V2 ``transactions`` shape.

    Args:
        tx: Validated legacy row
        owner_id: Destination id of the owning user, from the remap table

    Fallbacks:
        external_id: ``external_id``, then the legacy ``id``
        description: ``description``, then ``narration``, then "No description"
        source: ``source``, then "migrated"
        categorization_status: value, then "pending"
        metadata: value as-is, or an empty object when absent
    """
    return {
        "user_id": owner_id,
        "external_id": coalesce(tx.external_id, tx.id),
        "description": coalesce(tx.description, tx.narration, default=DEFAULT_DESCRIPTION),
        "amount": tx.amount,
        "type": tx.type,
        "transaction_date": tx.date,
        "category": tx.category,
        "source": coalesce(tx.source, default=DEFAULT_TRANSACTION_SOURCE),
        "categorization_status": coalesce(tx.categorization_status, default=DEFAULT_CATEGORIZATION_STATUS),
        "metadata": {} if tx.metadata is None else tx.metadata,
        "created_at": tx.created_at,
        PROVENANCE_FLAG: True,
        LEGACY_ID: tx.id,
    }


def stamp_connection(row: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a connection row as-is, adding the provenance flag."""
    return {**row, PROVENANCE_FLAG: True}
