"""Internal data models for apihive.

All models use Pydantic v2. Drafts and environments are the engine's input,
ResolvedRequest is what crosses the transport boundary, and ResponseRecord /
HistoryEntry are what comes back out.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

# Methods that never carry a request body
BODYLESS_METHODS: frozenset[str] = frozenset({"GET", "HEAD"})


def new_id() -> str:
    """Fresh opaque identifier for entries, drafts and history items."""
    return str(uuid.uuid4())


# =============================================================================
# Draft Building Blocks
# =============================================================================


class KeyValueEntry(BaseModel):
    """One row of a params, headers or form-fields table.

    Identity is the id. Key and value may be empty; disabled entries and
    entries with a blank key never contribute to a resolved request.
    """

    # Workspace YAML often holds bare numbers, e.g. "value: 5000"
    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    id: str = Field(default_factory=new_id, description="Opaque identifier")
    key: str = Field(default="", description="Name, may contain {{variables}}")
    value: str = Field(default="", description="Value, may contain {{variables}}")
    enabled: bool = Field(default=True, description="Whether the row is applied")
    sensitive: bool = Field(default=False, description="Mask the value when displayed")


class BodyType(str, Enum):
    """How the draft's body is interpreted."""

    JSON = "json"
    TEXT = "text"
    FORM_DATA = "form-data"


class ApiKeyPlacement(str, Enum):
    """Where an API key credential is injected."""

    HEADER = "header"
    QUERY = "query"


# =============================================================================
# Authentication (tagged union, one model per variant)
# =============================================================================


class NoAuth(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["none"] = "none"


class BasicAuth(BaseModel):
    """HTTP Basic credentials. Sent literally, never variable-resolved."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["basic"] = "basic"
    username: str = ""
    password: str = ""


class BearerAuth(BaseModel):
    """Bearer token. Sent literally, never variable-resolved."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["bearer"] = "bearer"
    token: str = ""


class ApiKeyAuth(BaseModel):
    """API key sent as a header or appended as the last query parameter."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["api_key"] = "api_key"
    key: str = Field(default="", description="Header or query parameter name")
    value: str = Field(default="", description="Credential value")
    placement: ApiKeyPlacement = Field(default=ApiKeyPlacement.HEADER)


AuthSpec = Annotated[
    Union[NoAuth, BasicAuth, BearerAuth, ApiKeyAuth],
    Field(discriminator="type"),
]


# =============================================================================
# Request Draft
# =============================================================================


class RequestDraft(BaseModel):
    """An editable request definition, not yet resolved against an environment.

    form_fields is only read when body_type is form-data; body is only read
    for json and text. The method is upper-cased on input but not restricted
    here: unsupported methods are rejected at dispatch time so a draft loaded
    from a workspace file can still be inspected.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=new_id, description="Opaque identifier")
    name: str = Field(default="Untitled Request", description="Display name")
    method: str = Field(default="GET", description="HTTP method")
    url: str = Field(default="", description="URL template, may contain {{variables}}")
    params: list[KeyValueEntry] = Field(default_factory=list, description="Query parameters")
    headers: list[KeyValueEntry] = Field(default_factory=list, description="Request headers")
    body_type: BodyType = Field(default=BodyType.JSON, description="Body discriminator")
    body: str = Field(default="", description="Raw body for json and text")
    form_fields: list[KeyValueEntry] | None = Field(
        default=None, description="Fields for form-data bodies"
    )
    auth: AuthSpec = Field(default_factory=NoAuth, description="Authentication")
    documentation: str = Field(default="", description="Free-text notes, ignored by the engine")

    @field_validator("method")
    @classmethod
    def normalize_method(cls, v: str) -> str:
        return v.strip().upper()


# =============================================================================
# Environments
# =============================================================================


class EnvironmentVariable(BaseModel):
    """A variable in an environment. Only current_value is substituted."""

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    id: str = Field(default_factory=new_id, description="Opaque identifier")
    key: str = Field(default="", description="Variable name")
    initial_value: str = Field(default="", description="Shared/initial value")
    current_value: str = Field(default="", description="Value used for substitution")
    sensitive: bool = Field(default=False, description="Mask the value when displayed")
    enabled: bool = Field(default=True, description="Whether the variable is applied")


class Environment(BaseModel):
    """A named set of variables."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=new_id, description="Opaque identifier")
    name: str = Field(description="Environment name")
    variables: list[EnvironmentVariable] = Field(default_factory=list)


# =============================================================================
# Resolution and Transport Models
# =============================================================================


class ResolvedRequest(BaseModel):
    """A request with every placeholder expanded, ready for dispatch."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(description="Final URL")
    method: str = Field(description="HTTP method")
    headers: dict[str, str] = Field(default_factory=dict, description="Header name -> value")
    body: str | None = Field(default=None, description="Body text, None when no body is sent")


class TransportResponse(BaseModel):
    """What a transport hands back for a completed HTTP exchange."""

    model_config = ConfigDict(extra="forbid")

    status: int = Field(description="HTTP status code")
    status_text: str = Field(default="", description="Reason phrase")
    headers: dict[str, str] = Field(default_factory=dict, description="Response headers")
    body_text: str = Field(default="", description="Decoded response body")


class ResponseRecord(BaseModel):
    """Normalized outcome of one execution.

    Success, HTTP error statuses and local failures all produce this shape.
    Local failures (no transport, invalid request, transport error) use
    status 0 and say what happened in status_text and body.
    """

    model_config = ConfigDict(extra="forbid")

    status: int = Field(description="HTTP status, 0 for local/transport failures")
    status_text: str = Field(default="", description="Reason phrase or failure kind")
    headers: dict[str, str] = Field(default_factory=dict, description="Response headers")
    body: str = Field(default="", description="Raw response body text")
    duration_ms: int = Field(default=0, ge=0, description="Wall-clock duration")
    size_bytes: int = Field(default=0, ge=0, description="UTF-8 size of body")

    @property
    def is_synthetic(self) -> bool:
        """True for records produced locally rather than by a server."""
        return self.status == 0


class HistoryEntry(BaseModel):
    """One line in the execution history."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=new_id, description="Opaque identifier")
    name: str = Field(description="Draft name at execution time")
    method: str = Field(description="HTTP method")
    url: str = Field(description="Resolved URL, without query-placed API keys")
    status: int = Field(description="Status of the resulting record")
    duration_ms: int = Field(default=0, ge=0)
    size_bytes: int = Field(default=0, ge=0)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the execution finished (UTC)",
    )


# =============================================================================
# Workspace Configuration Models
# =============================================================================


class Settings(BaseModel):
    """Host settings for the HTTP transport and history."""

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    follow_redirects: bool = Field(default=True, description="Follow 3xx redirects")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    history_limit: int = Field(default=20, gt=0, description="History capacity")


class Workspace(BaseModel):
    """Top-level workspace file structure."""

    model_config = ConfigDict(extra="forbid")

    settings: Settings = Field(default_factory=Settings)
    environments: list[Environment] = Field(default_factory=list)
    requests: list[RequestDraft] = Field(default_factory=list)
