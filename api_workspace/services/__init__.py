# Services package

from .variable_substitution import extract_variables, substitute, resolve_request_variables
from .http_executor import execute_request
from .history_service import add_history_item
from .import_export import build_export, export_to_postman, parse_import_payload
from .persistence import MemoryStorageAdapter, PersistenceAdapter, SqlAlchemyStorageAdapter
from .workspace_store import WorkspaceStore, load_persisted_state

__all__ = [
    "extract_variables",
    "substitute",
    "resolve_request_variables",
    "execute_request",
    "add_history_item",
    "build_export",
    "export_to_postman",
    "parse_import_payload",
    "MemoryStorageAdapter",
    "PersistenceAdapter",
    "SqlAlchemyStorageAdapter",
    "WorkspaceStore",
    "load_persisted_state",
]
