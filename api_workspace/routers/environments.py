"""
Environment management API routes.

Provides CRUD operations for environments (named variable sets such as
development, staging or production) and selection of the active one.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_store
from ..exceptions import ResourceNotFoundError
from ..schemas.environment import (
    ActiveEnvironmentPayload,
    Environment,
    EnvironmentCreate,
    EnvironmentUpdate,
)
from ..services.workspace_store import WorkspaceStore


router = APIRouter(prefix="/api/environments", tags=["environments"])


@router.get("", response_model=list[Environment])
async def list_environments(store: WorkspaceStore = Depends(get_store)):
    return store.state.environments


@router.post("", response_model=Environment, status_code=status.HTTP_201_CREATED)
async def create_environment(environment_data: EnvironmentCreate, store: WorkspaceStore = Depends(get_store)):
    """Create an environment with no variables."""
    return store.add_environment(environment_data.name)


@router.post("/import", response_model=Environment, status_code=status.HTTP_201_CREATED)
async def import_environment(environment: Environment, store: WorkspaceStore = Depends(get_store)):
    """Import an environment; it receives new environment and variable IDs."""
    return store.import_environment(environment)


@router.get("/active", response_model=Environment | None)
async def get_active_environment(store: WorkspaceStore = Depends(get_store)):
    """
    Get the currently active environment.

    Returns:
        The active environment, or null when none is active
    """
    return store.get_active_environment()


@router.put("/active", response_model=Environment | None)
async def set_active_environment(
    payload: ActiveEnvironmentPayload,
    store: WorkspaceStore = Depends(get_store),
):
    """
    Activate an environment, or deactivate all with ``environmentId: null``.

    Raises:
        ResourceNotFoundError: If the environment does not exist
    """
    if not store.set_active_environment(payload.environment_id):
        raise ResourceNotFoundError("Environment", payload.environment_id)
    return store.get_active_environment()


@router.get("/{environment_id}", response_model=Environment)
async def get_environment(environment_id: str, store: WorkspaceStore = Depends(get_store)):
    environment = store.get_environment(environment_id)
    if environment is None:
        raise ResourceNotFoundError("Environment", environment_id)
    return environment


@router.put("/{environment_id}", response_model=Environment)
async def update_environment(
    environment_id: str,
    environment_data: EnvironmentUpdate,
    store: WorkspaceStore = Depends(get_store),
):
    """Update an environment's name or replace its variable list."""
    if not store.update_environment(environment_id, environment_data):
        raise ResourceNotFoundError("Environment", environment_id)
    return store.get_environment(environment_id)


@router.delete("/{environment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_environment(environment_id: str, store: WorkspaceStore = Depends(get_store)):
    """
    Delete an environment.

    Deleting the active environment leaves no environment active.
    """
    if not store.delete_environment(environment_id):
        raise ResourceNotFoundError("Environment", environment_id)
    return None


@router.post("/{environment_id}/duplicate", response_model=Environment, status_code=status.HTTP_201_CREATED)
async def duplicate_environment(environment_id: str, store: WorkspaceStore = Depends(get_store)):
    duplicated = store.duplicate_environment(environment_id)
    if duplicated is None:
        raise ResourceNotFoundError("Environment", environment_id)
    return duplicated
