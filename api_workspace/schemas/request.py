"""
Pydantic schemas for saved HTTP requests.

Defines key/value rows, auth and body variants, the request record itself
and the response record produced by the request executor.
"""

from typing import Literal

from pydantic import Field

from .base import CamelModel, new_id


# HTTP methods supported by the system
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

# Body types supported for requests
BodyType = Literal["none", "json", "form-data", "x-www-form-urlencoded", "raw", "binary"]

AuthType = Literal["none", "inherit", "basic", "bearer", "api-key"]


class KeyValue(CamelModel):
    """A header, query param, form field or variable row."""
    id: str = Field(default_factory=new_id)
    key: str = ""
    value: str = ""
    enabled: bool = True
    description: str | None = None
    is_secret: bool | None = None


class BasicAuth(CamelModel):
    username: str = ""
    password: str = ""


class BearerAuth(CamelModel):
    token: str = ""


class ApiKeyAuth(CamelModel):
    key: str = ""
    value: str = ""
    add_to: Literal["header", "query"] = "header"


class RequestAuth(CamelModel):
    """Auth configuration; only the block matching ``type`` is used."""
    type: AuthType = "none"
    basic: BasicAuth | None = None
    bearer: BearerAuth | None = None
    api_key: ApiKeyAuth | None = None


class RequestBody(CamelModel):
    type: BodyType = "none"
    raw: str | None = None
    form_data: list[KeyValue] | None = None
    urlencoded: list[KeyValue] | None = None


class ApiRequest(CamelModel):
    """
    A saved HTTP call definition.

    Owned by exactly one folder or collection at a time. Scripts are stored
    verbatim and never executed by the workspace.
    """
    id: str = Field(default_factory=new_id)
    name: str = "New Request"
    method: HttpMethod = "GET"
    url: str = ""
    headers: list[KeyValue] = []
    params: list[KeyValue] = []
    body: RequestBody = Field(default_factory=RequestBody)
    auth: RequestAuth = Field(default_factory=RequestAuth)
    pre_request_script: str | None = None
    test_script: str | None = None


class RequestCreate(CamelModel):
    """Schema for creating a request. Omitted fields take request defaults."""
    folder_id: str | None = None
    name: str | None = None
    method: HttpMethod | None = None
    url: str | None = None
    headers: list[KeyValue] | None = None
    params: list[KeyValue] | None = None
    body: RequestBody | None = None
    auth: RequestAuth | None = None
    pre_request_script: str | None = None
    test_script: str | None = None


class RequestUpdate(CamelModel):
    """Schema for updating an existing request. All fields are optional."""
    name: str | None = None
    method: HttpMethod | None = None
    url: str | None = None
    headers: list[KeyValue] | None = None
    params: list[KeyValue] | None = None
    body: RequestBody | None = None
    auth: RequestAuth | None = None
    pre_request_script: str | None = None
    test_script: str | None = None


class ApiResponse(CamelModel):
    """Response captured by the request executor."""
    status: int
    status_text: str = ""
    headers: dict[str, str] = {}
    body: str = ""
    time: float = 0
    size: int = 0


def new_request(**overrides) -> ApiRequest:
    """Build a default request ("New Request", GET, no body, no auth)."""
    return ApiRequest(**overrides)
