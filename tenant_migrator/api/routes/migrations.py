"""Migration trigger endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header

from ..dependencies import StoreClients, get_config, get_identity_provider, get_store_clients
from ..models import ErrorResponse, MigrationRunResponse
from ...auth import IdentityProvider, OperatorAuthorizer
from ...exceptions import MigrationServiceError
from ...models.migration import MigrationConfig
from ...orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 403, 409, 500)
}


@router.post("/run", response_model=MigrationRunResponse, responses=ERROR_RESPONSES)
def run_migration(
    authorization: Optional[str] = Header(None),
    config: MigrationConfig = Depends(get_config),
    clients: StoreClients = Depends(get_store_clients),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    """
    Run a full V1 to V2 migration.

    Requires an admin or owner bearer token. Per-row failures are reported
    inside ``stats.errors``; only a top-level failure produces a non-2xx
    status.
    """
    operator = OperatorAuthorizer(clients.destination, identity_provider).authorize(authorization)
    orchestrator = MigrationOrchestrator(clients.source, clients.destination, config)

    try:
        run = orchestrator.run_migration(operator_id=operator.user_id)
    except MigrationServiceError:
        raise
    except Exception as e:
        logger.error(f"Migration error: {e}")
        raise MigrationServiceError(str(e), status_code=500) from e

    return MigrationRunResponse(success=True, message="Migration completed", stats=run.to_dict())
