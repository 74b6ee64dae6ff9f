"""
Environment registry: CRUD over named variable sets and the active pointer.

The active environment is a nullable ID held by the store. It must always
reference an existing environment, so deleting the active environment
clears it and activating an unknown ID is rejected.
"""

from typing import Any

from ..schemas.base import new_id
from ..schemas.environment import Environment
from .tree_operations import regenerate_key_value_ids


def find_environment(environments: list[Environment], environment_id: str) -> Environment | None:
    return next((env for env in environments if env.id == environment_id), None)


def add_environment(environments: list[Environment], name: str) -> tuple[list[Environment], Environment]:
    """Create an environment with an empty variable list."""
    environment = Environment(name=name, variables=[])
    return environments + [environment], environment


def update_environment(
    environments: list[Environment],
    environment_id: str,
    patch: dict[str, Any],
) -> tuple[list[Environment], bool]:
    """Shallow-merge ``patch`` into the matching environment."""
    patch = {field: value for field, value in patch.items() if field != "id"}
    for index, env in enumerate(environments):
        if env.id == environment_id:
            updated = list(environments)
            updated[index] = env.model_copy(update=patch)
            return updated, True
    return environments, False


def delete_environment(
    environments: list[Environment],
    active_environment_id: str | None,
    environment_id: str,
) -> tuple[list[Environment], str | None, bool]:
    """
    Delete an environment.

    Returns:
        Tuple of (environments, active environment ID, found). The active ID
        is cleared when it pointed at the deleted environment.
    """
    remaining = [env for env in environments if env.id != environment_id]
    if len(remaining) == len(environments):
        return environments, active_environment_id, False
    if active_environment_id == environment_id:
        active_environment_id = None
    return remaining, active_environment_id, True


def set_active_environment(
    environments: list[Environment],
    environment_id: str | None,
) -> tuple[str | None, bool]:
    """
    Validate a new active pointer.

    Returns ``(environment_id, True)`` when it is None or names an existing
    environment, otherwise ``(None, False)``.
    """
    if environment_id is None:
        return None, True
    if find_environment(environments, environment_id) is None:
        return None, False
    return environment_id, True


def get_active_environment(
    environments: list[Environment],
    active_environment_id: str | None,
) -> Environment | None:
    if active_environment_id is None:
        return None
    return find_environment(environments, active_environment_id)


def _copy_with_new_ids(environment: Environment, name: str, **extra) -> Environment:
    return environment.model_copy(
        update={
            "id": new_id(),
            "name": name,
            "variables": regenerate_key_value_ids(environment.variables),
            **extra,
        },
        deep=True,
    )


def duplicate_environment(
    environments: list[Environment],
    environment_id: str,
) -> tuple[list[Environment], Environment | None]:
    """Copy an environment as "<name> (Copy)" with fresh environment and variable IDs."""
    original = find_environment(environments, environment_id)
    if original is None:
        return environments, None
    duplicated = _copy_with_new_ids(original, f"{original.name} (Copy)", is_active=None)
    return environments + [duplicated], duplicated


def import_environment(
    environments: list[Environment],
    environment: Environment,
) -> tuple[list[Environment], Environment]:
    """Append an externally supplied environment with fresh environment and variable IDs."""
    imported = _copy_with_new_ids(environment, environment.name)
    return environments + [imported], imported
