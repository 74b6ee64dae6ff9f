"""
Request execution API routes.

Executes a request (saved or edited in a tab) with collection and active
environment variables substituted and inherited auth applied. Successful
executions are recorded in history with secret variables left as
placeholders.
"""

from fastapi import APIRouter, Depends

from ..config import get_settings
from ..dependencies import get_store
from ..exceptions import ErrorResponse, ExecutionError, ResourceNotFoundError
from ..schemas.execute import ExecuteError, ExecutePayload
from ..schemas.request import ApiResponse, RequestAuth
from ..services.http_executor import execute_request
from ..services.tree_operations import resolve_effective_auth
from ..services.variable_substitution import resolve_request_variables
from ..services.workspace_store import WorkspaceStore


router = APIRouter(prefix="/api/execute", tags=["execute"])


@router.post(
    "",
    response_model=ApiResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid URL"},
        502: {"model": ErrorResponse, "description": "Network error"},
        504: {"model": ErrorResponse, "description": "Request timeout"},
    }
)
async def execute(payload: ExecutePayload, store: WorkspaceStore = Depends(get_store)):
    """
    Execute an HTTP request.

    Args:
        payload: The request, the collection supplying variables and
            inherited auth, and the tab that receives the response
        store: Workspace store

    Returns:
        ApiResponse with status, headers, body, and timing info

    Raises:
        ResourceNotFoundError: 404 if the collection does not exist
        ExecutionError: 400/502/504/500 when the request cannot be sent
    """
    request = payload.request
    collection = None
    if payload.collection_id is not None:
        collection = store.get_collection(payload.collection_id)
        if collection is None:
            raise ResourceNotFoundError("Collection", payload.collection_id)

    if request.auth.type == "inherit":
        inherited = None
        if collection is not None:
            inherited = resolve_effective_auth(collection, request.id)
            if inherited is None and collection.auth is not None and collection.auth.type != "inherit":
                inherited = collection.auth
        request = request.model_copy(update={"auth": inherited or RequestAuth()})

    environment = store.get_active_environment()
    resolved = resolve_request_variables(
        request,
        collection.variables if collection is not None else [],
        environment.variables if environment is not None else [],
        include_secrets=True,
    )

    result = await execute_request(resolved, timeout=get_settings().request_timeout)

    if isinstance(result, ExecuteError):
        raise ExecutionError(result)

    store.record_execution(payload.request, result, payload.collection_id, payload.tab_id)
    return result
