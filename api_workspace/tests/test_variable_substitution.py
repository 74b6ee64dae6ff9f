"""
Property-based tests for the variable substitution service.

Covers placeholder extraction, substitution, preservation of undefined
variables, environment precedence and secret-free request resolution.
"""

import pytest
from hypothesis import given, strategies as st, settings

from api_workspace.schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    BearerAuth,
    KeyValue,
    RequestAuth,
    RequestBody,
)
from api_workspace.services.variable_substitution import (
    extract_variables,
    replace_variables,
    resolve_request_variables,
    substitute,
    variables_to_dict,
)


# Strategy for generating valid variable names (alphanumeric + underscore)
variable_name_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_"),
    min_size=1,
    max_size=20,
).filter(lambda s: s[0].isalpha() or s[0] == "_")

# Strategy for generating variable values without angle brackets
variable_value_strategy = st.text(max_size=100).filter(lambda v: "<" not in v and ">" not in v)

plain_text_strategy = st.text(max_size=20).filter(lambda s: "<" not in s and ">" not in s)


def placeholder(name: str) -> str:
    return "<<" + name + ">>"


class TestProperty1PlaceholderExtraction:
    """
    Property 1: Placeholder extraction

    *For any* string containing <<variable_name>> placeholders, extraction
    returns every variable name.
    """

    @given(var_names=st.lists(variable_name_strategy, min_size=1, max_size=5, unique=True))
    @settings(max_examples=100)
    def test_extracts_all_variables_from_template(self, var_names: list[str]):
        template = " ".join(placeholder(name) for name in var_names)

        extracted = extract_variables(template)

        assert set(extracted) == set(var_names)

    @given(text=st.text(max_size=100).filter(lambda s: "<<" not in s))
    @settings(max_examples=100)
    def test_returns_empty_for_no_placeholders(self, text: str):
        assert extract_variables(text) == []

    @given(var_name=variable_name_strategy, prefix=plain_text_strategy, suffix=plain_text_strategy)
    @settings(max_examples=100)
    def test_extracts_variable_regardless_of_surrounding_text(self, var_name: str, prefix: str, suffix: str):
        template = prefix + placeholder(var_name) + suffix

        assert var_name in extract_variables(template)

    def test_curly_braces_are_not_placeholders(self):
        assert extract_variables("{{baseUrl}}/users") == []


class TestProperty2SubstitutionCorrectness:
    """
    Property 2: Substitution correctness

    *For any* template and variable mapping, defined placeholders are replaced
    by their values and surrounding text is preserved.
    """

    @given(var_name=variable_name_strategy, var_value=variable_value_strategy)
    @settings(max_examples=100)
    def test_defined_variable_is_replaced(self, var_name: str, var_value: str):
        result, unmatched = substitute(placeholder(var_name), {var_name: var_value})

        assert result == var_value
        assert unmatched == []

    @given(
        variables=st.dictionaries(
            keys=variable_name_strategy,
            values=variable_value_strategy,
            min_size=1,
            max_size=5
        )
    )
    @settings(max_examples=100)
    def test_all_defined_variables_are_replaced(self, variables: dict[str, str]):
        template = " ".join(placeholder(name) for name in variables)

        result, unmatched = substitute(template, variables)

        assert unmatched == []
        for var_name in variables:
            assert placeholder(var_name) not in result

    @given(
        var_name=variable_name_strategy,
        var_value=variable_value_strategy,
        prefix=plain_text_strategy,
        suffix=plain_text_strategy,
    )
    @settings(max_examples=100)
    def test_substitution_preserves_surrounding_text(self, var_name: str, var_value: str, prefix: str, suffix: str):
        template = prefix + placeholder(var_name) + suffix

        result, unmatched = substitute(template, {var_name: var_value})

        assert result == prefix + var_value + suffix
        assert unmatched == []


class TestProperty3UndefinedVariablePreservation:
    """
    Property 3: Undefined variables are preserved

    *For any* template with undefined placeholders, those placeholders are
    left as-is and reported as unmatched.
    """

    @given(var_name=variable_name_strategy)
    @settings(max_examples=100)
    def test_undefined_variable_placeholder_is_preserved(self, var_name: str):
        template = placeholder(var_name)

        result, unmatched = substitute(template, {})

        assert result == template
        assert var_name in unmatched

    @given(undefined_vars=st.lists(variable_name_strategy, min_size=1, max_size=5, unique=True))
    @settings(max_examples=100)
    def test_all_undefined_variables_reported(self, undefined_vars: list[str]):
        template = " ".join(placeholder(name) for name in undefined_vars)

        _, unmatched = substitute(template, {})

        assert set(unmatched) == set(undefined_vars)


class TestVariableMerging:
    """Collection and environment variables are merged with environment precedence."""

    def test_environment_overrides_collection(self):
        collection_vars = [KeyValue(key="host", value="collection.example.com")]
        env_vars = [KeyValue(key="host", value="env.example.com")]

        assert replace_variables("https://<<host>>/", collection_vars, env_vars) == "https://env.example.com/"

    def test_disabled_variables_are_ignored(self):
        collection_vars = [KeyValue(key="host", value="example.com", enabled=False)]

        assert replace_variables("<<host>>", collection_vars, []) == "<<host>>"

    def test_secrets_can_be_excluded(self):
        env_vars = [
            KeyValue(key="token", value="s3cr3t", is_secret=True),
            KeyValue(key="user", value="alice"),
        ]

        merged = variables_to_dict([], env_vars, include_secrets=False)

        assert merged == {"user": "alice"}


class TestResolveRequestVariables:
    """Request resolution substitutes everywhere and keeps secrets out by default."""

    @pytest.fixture
    def request_with_placeholders(self) -> ApiRequest:
        return ApiRequest(
            name="Get user",
            url="https://<<host>>/users/<<userId>>",
            headers=[KeyValue(key="Authorization", value="Bearer <<token>>")],
            params=[KeyValue(key="page", value="<<page>>")],
            body=RequestBody(type="json", raw='{"id": "<<userId>>"}'),
            auth=RequestAuth(type="bearer", bearer=BearerAuth(token="<<token>>")),
        )

    @pytest.fixture
    def env_vars(self) -> list[KeyValue]:
        return [
            KeyValue(key="host", value="api.example.com"),
            KeyValue(key="userId", value="42"),
            KeyValue(key="page", value="2"),
            KeyValue(key="token", value="s3cr3t", is_secret=True),
        ]

    def test_secrets_stay_as_placeholders(self, request_with_placeholders, env_vars):
        resolved = resolve_request_variables(request_with_placeholders, [], env_vars)

        assert resolved.url == "https://api.example.com/users/42"
        assert resolved.params[0].value == "2"
        assert resolved.body.raw == '{"id": "42"}'
        assert resolved.headers[0].value == "Bearer <<token>>"
        assert resolved.auth.bearer.token == "<<token>>"

    def test_secrets_included_for_sending(self, request_with_placeholders, env_vars):
        resolved = resolve_request_variables(request_with_placeholders, [], env_vars, include_secrets=True)

        assert resolved.headers[0].value == "Bearer s3cr3t"
        assert resolved.auth.bearer.token == "s3cr3t"

    def test_original_request_is_not_modified(self, request_with_placeholders, env_vars):
        resolve_request_variables(request_with_placeholders, [], env_vars, include_secrets=True)

        assert request_with_placeholders.url == "https://<<host>>/users/<<userId>>"
        assert request_with_placeholders.auth.bearer.token == "<<token>>"

    def test_api_key_auth_is_resolved(self):
        request = ApiRequest(
            auth=RequestAuth(type="api-key", api_key=ApiKeyAuth(key="X-Api-Key", value="<<apiKey>>"))
        )

        resolved = resolve_request_variables(request, [KeyValue(key="apiKey", value="abc")], [])

        assert resolved.auth.api_key.value == "abc"
        assert resolved.auth.api_key.key == "X-Api-Key"
