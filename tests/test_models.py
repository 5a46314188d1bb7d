"""Tests for apihive.models.

Tests cover:
- Auth tagged union: discriminator parsing and forbidden cross-variant fields
- RequestDraft defaults and method normalization
- ResponseRecord / HistoryEntry constraints
- Workspace parsing from plain data
"""

import pytest
from pydantic import TypeAdapter, ValidationError

from apihive.models import (
    ApiKeyAuth,
    ApiKeyPlacement,
    AuthSpec,
    BasicAuth,
    BearerAuth,
    BodyType,
    EnvironmentVariable,
    KeyValueEntry,
    NoAuth,
    RequestDraft,
    ResponseRecord,
    Settings,
    Workspace,
)

auth_adapter = TypeAdapter(AuthSpec)


class TestAuthSpec:
    @pytest.mark.parametrize(
        "data, expected_type",
        [
            ({"type": "none"}, NoAuth),
            ({"type": "basic", "username": "u", "password": "p"}, BasicAuth),
            ({"type": "bearer", "token": "t"}, BearerAuth),
            ({"type": "api_key", "key": "k", "value": "v", "placement": "query"}, ApiKeyAuth),
        ],
    )
    def test_discriminated(self, data: dict, expected_type: type) -> None:
        assert isinstance(auth_adapter.validate_python(data), expected_type)

    def test_bearer_with_username_rejected(self) -> None:
        with pytest.raises(ValidationError):
            auth_adapter.validate_python({"type": "bearer", "token": "t", "username": "u"})

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            auth_adapter.validate_python({"type": "oauth2"})

    def test_api_key_default_placement_header(self) -> None:
        auth = auth_adapter.validate_python({"type": "api_key", "key": "k", "value": "v"})
        assert auth.placement == ApiKeyPlacement.HEADER

    def test_invalid_placement_rejected(self) -> None:
        with pytest.raises(ValidationError):
            auth_adapter.validate_python({"type": "api_key", "placement": "cookie"})

    def test_switching_variant_discards_fields(self) -> None:
        """Replacing auth on a draft leaves no trace of the old variant."""
        draft = RequestDraft(auth=BasicAuth(username="u", password="p"))
        draft.auth = BearerAuth(token="t")
        assert draft.auth.model_dump() == {"type": "bearer", "token": "t"}


class TestRequestDraft:
    def test_defaults(self) -> None:
        draft = RequestDraft()
        assert draft.name == "Untitled Request"
        assert draft.method == "GET"
        assert draft.body_type == BodyType.JSON
        assert draft.params == []
        assert draft.headers == []
        assert draft.form_fields is None
        assert isinstance(draft.auth, NoAuth)
        assert draft.id

    def test_ids_unique(self) -> None:
        assert RequestDraft().id != RequestDraft().id

    @pytest.mark.parametrize("method", ["post", " Post ", "POST"])
    def test_method_normalized(self, method: str) -> None:
        assert RequestDraft(method=method).method == "POST"

    def test_unsupported_method_allowed_on_model(self) -> None:
        """The allow-list is enforced at dispatch, not when building drafts."""
        assert RequestDraft(method="trace").method == "TRACE"

    def test_body_type_from_string(self) -> None:
        assert RequestDraft(body_type="form-data").body_type == BodyType.FORM_DATA

    def test_auth_from_dict(self) -> None:
        draft = RequestDraft.model_validate({"auth": {"type": "bearer", "token": "t"}})
        assert draft.auth == BearerAuth(token="t")

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            RequestDraft.model_validate({"urll": "typo"})


class TestKeyValueEntry:
    def test_defaults(self) -> None:
        kv = KeyValueEntry()
        assert kv.key == ""
        assert kv.value == ""
        assert kv.enabled is True
        assert kv.sensitive is False

    def test_numbers_coerced_to_str(self) -> None:
        assert KeyValueEntry.model_validate({"key": "limit", "value": 10}).value == "10"

    def test_env_variable_numbers_coerced(self) -> None:
        variable = EnvironmentVariable.model_validate({"key": "timeout_ms", "current_value": 5000})
        assert variable.current_value == "5000"


class TestResponseRecord:
    def test_negative_duration_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ResponseRecord(status=200, duration_ms=-1)

    def test_negative_size_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ResponseRecord(status=200, size_bytes=-1)

    @pytest.mark.parametrize("status, synthetic", [(0, True), (200, False), (500, False)])
    def test_is_synthetic(self, status: int, synthetic: bool) -> None:
        assert ResponseRecord(status=status).is_synthetic is synthetic


class TestWorkspace:
    def test_empty(self) -> None:
        workspace = Workspace.model_validate({})
        assert workspace.settings == Settings()
        assert workspace.environments == []
        assert workspace.requests == []

    def test_settings_constraints(self) -> None:
        with pytest.raises(ValidationError):
            Settings(timeout=0)
        with pytest.raises(ValidationError):
            Settings(history_limit=0)

    def test_nested_parse(self) -> None:
        workspace = Workspace.model_validate({
            "environments": [{"name": "dev", "variables": [{"key": "a", "current_value": "1"}]}],
            "requests": [{"name": "r", "params": [{"key": "q", "value": "x"}]}],
        })
        assert workspace.environments[0].variables[0].current_value == "1"
        assert workspace.requests[0].params[0].key == "q"
