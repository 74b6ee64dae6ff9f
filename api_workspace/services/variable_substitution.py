"""
Variable substitution service for replacing <<variable>> placeholders.

This service handles extraction and substitution of variable placeholders
in requests (URL, headers, params, body, auth). Collection variables are
overridden by environment variables of the same key.
"""

import re
from typing import Tuple, List

from ..schemas.request import ApiRequest, KeyValue


# Pattern to match <<variable_name>> placeholders
VARIABLE_PATTERN = re.compile(r'<<([\w.-]+)>>')


def extract_variables(template: str) -> List[str]:
    """
    Extract all variable names from a template string.

    Example:
        >>> extract_variables("<<baseUrl>>/users/<<id>>")
        ['baseUrl', 'id']
    """
    if not template:
        return []

    return VARIABLE_PATTERN.findall(template)


def substitute(template: str, variables: dict[str, str]) -> Tuple[str, List[str]]:
    """
    Replace variable placeholders in a template with their values.

    Args:
        template: String containing <<variable>> placeholders
        variables: Dictionary mapping variable names to their values

    Returns:
        Tuple of (substituted string, list of unmatched variable names)

    Example:
        >>> substitute("Hello <<name>>", {"name": "World"})
        ('Hello World', [])
        >>> substitute("Hello <<name>>", {})
        ('Hello <<name>>', ['name'])
    """
    if not template:
        return template, []

    unmatched: List[str] = []

    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        if var_name in variables:
            return variables[var_name]
        else:
            unmatched.append(var_name)
            return match.group(0)  # Keep original placeholder

    result = VARIABLE_PATTERN.sub(replace_match, template)
    return result, unmatched


def variables_to_dict(
    collection_variables: list[KeyValue],
    environment_variables: list[KeyValue],
    include_secrets: bool = True,
) -> dict[str, str]:
    """Merge enabled variables into a lookup table; environment values win."""
    merged: dict[str, str] = {}
    for variable in [*collection_variables, *environment_variables]:
        if not variable.enabled or not variable.key:
            continue
        if variable.is_secret and not include_secrets:
            continue
        merged[variable.key] = variable.value
    return merged


def replace_variables(
    text: str,
    variables: list[KeyValue],
    environment_variables: list[KeyValue],
) -> str:
    """Substitute enabled collection and environment variables into ``text``."""
    result, _ = substitute(text, variables_to_dict(variables, environment_variables))
    return result


def _resolve_rows(rows: list[KeyValue] | None, variables: dict[str, str]) -> list[KeyValue] | None:
    if rows is None:
        return None
    return [row.model_copy(update={"value": substitute(row.value, variables)[0]}) for row in rows]


def resolve_request_variables(
    request: ApiRequest,
    collection_variables: list[KeyValue],
    environment_variables: list[KeyValue],
    include_secrets: bool = False,
) -> ApiRequest:
    """
    Return a copy of ``request`` with variables substituted everywhere.

    By default secret variables are not substituted and stay as
    <<placeholders>>, so the result is safe to record in history.
    """
    variables = variables_to_dict(collection_variables, environment_variables, include_secrets)

    def resolve(text: str | None) -> str | None:
        return substitute(text, variables)[0] if text else text

    auth = request.auth
    auth_update = {}
    if auth.basic is not None:
        auth_update["basic"] = auth.basic.model_copy(
            update={"username": resolve(auth.basic.username), "password": resolve(auth.basic.password)}
        )
    if auth.bearer is not None:
        auth_update["bearer"] = auth.bearer.model_copy(update={"token": resolve(auth.bearer.token)})
    if auth.api_key is not None:
        auth_update["api_key"] = auth.api_key.model_copy(
            update={"key": resolve(auth.api_key.key), "value": resolve(auth.api_key.value)}
        )

    body = request.body.model_copy(
        update={
            "raw": resolve(request.body.raw),
            "form_data": _resolve_rows(request.body.form_data, variables),
            "urlencoded": _resolve_rows(request.body.urlencoded, variables),
        }
    )
    return request.model_copy(
        update={
            "url": resolve(request.url),
            "headers": _resolve_rows(request.headers, variables),
            "params": _resolve_rows(request.params, variables),
            "body": body,
            "auth": auth.model_copy(update=auth_update),
        },
        deep=True,
    )
