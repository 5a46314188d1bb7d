"""Request Builder - Turns a draft plus variables into a ResolvedRequest.

Everything in this module is pure: no I/O, no clock, no shared state. The
pipeline is URL building, header/auth composition and body selection, in
that order. Query-placed API keys are left out of resolve_request() and
appended by apply_query_auth() at dispatch time so they always land after
the draft's own parameters, and so history can record the URL without them.
"""

from __future__ import annotations

import base64
from urllib.parse import quote

from apihive.models import (
    BODYLESS_METHODS,
    ApiKeyAuth,
    ApiKeyPlacement,
    AuthSpec,
    BasicAuth,
    BearerAuth,
    BodyType,
    KeyValueEntry,
    RequestDraft,
    ResolvedRequest,
)
from apihive.variables import resolve

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Characters encodeURIComponent leaves alone, beyond alphanumerics and "_.-~"
_COMPONENT_SAFE = "!*'()"


def encode_component(value: str) -> str:
    """Percent-encode a query key or value with URI-component rules."""
    return quote(value, safe=_COMPONENT_SAFE)


def _resolved_pairs(
    entries: list[KeyValueEntry],
    variables: dict[str, str],
) -> list[tuple[str, str]]:
    """Enabled, non-blank-key entries as (key, value) with variables applied."""
    pairs: list[tuple[str, str]] = []
    for entry in entries:
        key = entry.key.strip()
        if not entry.enabled or not key:
            continue
        pairs.append((resolve(key, variables), resolve(entry.value, variables)))
    return pairs


def _encode_pairs(pairs: list[tuple[str, str]]) -> str:
    return "&".join(f"{encode_component(k)}={encode_component(v)}" for k, v in pairs)


def build_url(
    url: str,
    params: list[KeyValueEntry],
    variables: dict[str, str],
) -> str:
    """Resolve the URL template and merge enabled query parameters.

    Parameters keep draft order. The query block is inserted before any
    fragment, joined with "&" if the URL already has a query, else "?".
    """
    base_url = resolve(url, variables)
    pairs = _resolved_pairs(params, variables)
    if not pairs:
        return base_url

    query = _encode_pairs(pairs)
    without_fragment, hash_sign, fragment = base_url.partition("#")
    separator = "&" if "?" in without_fragment else "?"
    return f"{without_fragment}{separator}{query}{hash_sign}{fragment}"


def build_headers(
    headers: list[KeyValueEntry],
    auth: AuthSpec,
    variables: dict[str, str],
) -> dict[str, str]:
    """Merge enabled headers, then inject auth headers on top.

    Later headers with the same resolved name overwrite earlier ones. Auth
    credentials are used literally, never variable-resolved, and win over a
    user header of the same name.
    """
    resolved: dict[str, str] = dict(_resolved_pairs(headers, variables))

    if isinstance(auth, BasicAuth):
        credentials = base64.b64encode(f"{auth.username}:{auth.password}".encode("utf-8")).decode("ascii")
        resolved["Authorization"] = f"Basic {credentials}"
    elif isinstance(auth, BearerAuth):
        resolved["Authorization"] = f"Bearer {auth.token}"
    elif isinstance(auth, ApiKeyAuth) and auth.placement == ApiKeyPlacement.HEADER:
        resolved[auth.key] = auth.value
    # Query-placed API keys are handled by apply_query_auth()

    return resolved


def select_body(
    draft: RequestDraft,
    variables: dict[str, str],
) -> tuple[str | None, str | None]:
    """Pick the body to send and an optional Content-Type override.

    Returns:
        Tuple of (body, content_type). Either may be None.
    """
    if draft.method in BODYLESS_METHODS:
        return None, None

    if draft.body_type == BodyType.JSON and draft.body.strip():
        # JSON bodies are sent verbatim
        return draft.body, JSON_CONTENT_TYPE

    if draft.body_type == BodyType.FORM_DATA and draft.form_fields:
        pairs = _resolved_pairs(draft.form_fields, variables)
        return _encode_pairs(pairs), FORM_CONTENT_TYPE

    if draft.body_type == BodyType.TEXT and draft.body.strip():
        return draft.body, None

    return None, None


def _set_content_type(headers: dict[str, str], content_type: str) -> None:
    """Replace any Content-Type header, whatever its case."""
    for name in [k for k in headers if k.lower() == "content-type"]:
        del headers[name]
    headers["Content-Type"] = content_type


def resolve_request(draft: RequestDraft, variables: dict[str, str]) -> ResolvedRequest:
    """Build the dispatchable request for a draft.

    The returned URL does not include query-placed API keys; see
    apply_query_auth().
    """
    url = build_url(draft.url, draft.params, variables)
    headers = build_headers(draft.headers, draft.auth, variables)
    body, content_type = select_body(draft, variables)
    if content_type is not None:
        _set_content_type(headers, content_type)
    return ResolvedRequest(url=url, method=draft.method, headers=headers, body=body)


def apply_query_auth(url: str, auth: AuthSpec) -> str:
    """Append a query-placed API key to the final URL. Other auth is a no-op."""
    if not isinstance(auth, ApiKeyAuth) or auth.placement != ApiKeyPlacement.QUERY:
        return url
    join = "&" if "?" in url else "?"
    return f"{url}{join}{encode_component(auth.key)}={encode_component(auth.value)}"
