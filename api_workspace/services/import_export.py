"""
Export and import of workspace snapshots.

Export builds a versioned snapshot of collections and environments with all
secret material redacted. History is never exported because captured
response bodies may contain sensitive data. Redaction works on copies; live
state is never touched.

Import validates a payload before anything is applied. Collections imported
one at a time get fresh IDs throughout so importing the same file twice
cannot collide with existing entities.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from ..exceptions import ImportValidationError
from ..schemas.collection import Collection, RequestFolder
from ..schemas.environment import Environment
from ..schemas.request import ApiRequest, KeyValue, RequestAuth
from ..schemas.storage import EXPORT_VERSION, AppStorageExport, WorkspaceState

logger = logging.getLogger(__name__)

# Placeholders written in place of auth secrets
PASSWORD_PLACEHOLDER = "{{password}}"
TOKEN_PLACEHOLDER = "{{token}}"
API_KEY_PLACEHOLDER = "{{apiKey}}"

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

IMPORT_FIELDS = ("collections", "environments", "history")


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------

def sanitize_variables(variables: list[KeyValue] | None) -> list[KeyValue] | None:
    """Replace the value of every secret row with its own key."""
    if variables is None:
        return None
    return [
        variable.model_copy(update={"value": variable.key}) if variable.is_secret else variable
        for variable in variables
    ]


def sanitize_auth(auth: RequestAuth | None) -> RequestAuth | None:
    """
    Replace the secret part of every auth block with a placeholder.

    Blocks left over from an earlier auth type are redacted too, whatever
    ``type`` currently selects. Empty secrets stay empty so the export does
    not suggest a value existed. Usernames, API key names and their
    placement are kept.
    """
    if auth is None:
        return None

    update: dict[str, Any] = {}
    if auth.basic is not None:
        update["basic"] = auth.basic.model_copy(
            update={"password": PASSWORD_PLACEHOLDER if auth.basic.password else ""}
        )
    if auth.bearer is not None:
        update["bearer"] = auth.bearer.model_copy(
            update={"token": TOKEN_PLACEHOLDER if auth.bearer.token else ""}
        )
    if auth.api_key is not None:
        update["api_key"] = auth.api_key.model_copy(
            update={"value": API_KEY_PLACEHOLDER if auth.api_key.value else ""}
        )
    return auth.model_copy(update=update)


def sanitize_request(request: ApiRequest) -> ApiRequest:
    body = request.body.model_copy(
        update={
            "form_data": sanitize_variables(request.body.form_data),
            "urlencoded": sanitize_variables(request.body.urlencoded),
        }
    )
    return request.model_copy(
        update={
            "headers": sanitize_variables(request.headers),
            "params": sanitize_variables(request.params),
            "body": body,
            "auth": sanitize_auth(request.auth),
        }
    )


def sanitize_folder(folder: RequestFolder) -> RequestFolder:
    """Redact a folder, its requests and every nested folder at any depth."""
    return folder.model_copy(
        update={
            "auth": sanitize_auth(folder.auth),
            "requests": [sanitize_request(request) for request in folder.requests],
            "folders": [sanitize_folder(child) for child in folder.folders],
        }
    )


def sanitize_collection(collection: Collection) -> Collection:
    return collection.model_copy(
        update={
            "variables": sanitize_variables(collection.variables),
            "auth": sanitize_auth(collection.auth),
            "requests": [sanitize_request(request) for request in collection.requests],
            "folders": [sanitize_folder(folder) for folder in collection.folders],
        }
    )


def sanitize_environment(environment: Environment) -> Environment:
    return environment.model_copy(update={"variables": sanitize_variables(environment.variables)})


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def build_export(state: WorkspaceState, exported_at: datetime | None = None) -> AppStorageExport:
    """Build a redacted snapshot of the workspace. History is excluded."""
    exported_at = exported_at or datetime.now(timezone.utc)
    return AppStorageExport(
        version=EXPORT_VERSION,
        exported_at=exported_at.isoformat().replace("+00:00", "Z"),
        collections=[sanitize_collection(collection) for collection in state.collections],
        environments=[sanitize_environment(env) for env in state.environments],
        active_environment_id=state.active_environment_id,
    )


def _postman_rows(rows: list[KeyValue] | None) -> list[dict[str, Any]]:
    result = []
    for row in rows or []:
        item: dict[str, Any] = {"key": row.key, "value": row.value, "disabled": not row.enabled}
        if row.description is not None:
            item["description"] = row.description
        result.append(item)
    return result


def _postman_request(request: ApiRequest) -> dict[str, Any]:
    body: dict[str, Any] | None = None
    if request.body.type in ("json", "raw"):
        body = {"mode": "raw", "raw": request.body.raw or ""}
        if request.body.type == "json":
            body["options"] = {"raw": {"language": "json"}}
    elif request.body.type == "x-www-form-urlencoded":
        body = {"mode": "urlencoded", "urlencoded": _postman_rows(request.body.urlencoded)}
    elif request.body.type == "form-data":
        body = {"mode": "formdata", "formdata": _postman_rows(request.body.form_data)}

    postman_request: dict[str, Any] = {
        "method": request.method,
        "header": _postman_rows(request.headers),
        "url": {"raw": request.url, "query": _postman_rows(request.params)},
    }
    if body is not None:
        postman_request["body"] = body
    return {"name": request.name, "request": postman_request}


def _postman_folder(folder: RequestFolder) -> dict[str, Any]:
    item: dict[str, Any] = {
        "name": folder.name,
        "item": [_postman_folder(child) for child in folder.folders]
        + [_postman_request(request) for request in folder.requests],
    }
    if folder.description is not None:
        item["description"] = folder.description
    return item


def export_to_postman(collection: Collection) -> str:
    """Serialize a collection as a Postman v2.1 collection document."""
    info: dict[str, Any] = {"name": collection.name, "schema": POSTMAN_SCHEMA}
    if collection.description is not None:
        info["description"] = collection.description

    document = {
        "info": info,
        "item": [_postman_folder(folder) for folder in collection.folders]
        + [_postman_request(request) for request in collection.requests],
        "variable": [
            {"key": v.key, "value": v.value, "disabled": not v.enabled}
            for v in collection.variables
        ],
    }
    return json.dumps(document, indent=2)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def validate_import_payload(data: Any) -> AppStorageExport:
    """
    Validate a decoded import payload.

    Raises:
        ImportValidationError: The payload is not an object, has none of
            ``collections``, ``environments`` or ``history``, or does not
            match the snapshot schema.
    """
    if not isinstance(data, dict):
        raise ImportValidationError("Import payload must be a JSON object")

    if not any(data.get(field) is not None for field in IMPORT_FIELDS):
        raise ImportValidationError(
            "Invalid backup file: expected at least one of collections, environments or history"
        )

    try:
        return AppStorageExport.model_validate(data)
    except ValidationError as exc:
        raise ImportValidationError(f"Invalid backup file: {exc.error_count()} invalid field(s)") from exc


def parse_import_payload(text: str | bytes) -> AppStorageExport:
    """Decode and validate an import file."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ImportValidationError(f"Invalid JSON: {exc}") from exc
    return validate_import_payload(data)
