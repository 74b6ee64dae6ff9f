"""
Pydantic schemas for environments.

An environment is a named, switchable set of variables. The active one is
tracked by the store's ``active_environment_id`` pointer, not by the record.
"""

from pydantic import Field

from .base import CamelModel, new_id
from .request import KeyValue


class Environment(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    variables: list[KeyValue] = []
    is_active: bool | None = None


class EnvironmentCreate(CamelModel):
    name: str


class EnvironmentUpdate(CamelModel):
    """Schema for updating an environment. All fields are optional."""
    name: str | None = None
    variables: list[KeyValue] | None = None


class ActiveEnvironmentPayload(CamelModel):
    environment_id: str | None = None
