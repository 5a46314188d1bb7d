"""Pytest configuration and fixtures for apihive tests.

This file provides:
- RecordingTransport: in-memory Transport that records what it was sent
- FailingTransport: Transport that raises on every send
- Fixtures for drafts, history logs and workspace files
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from apihive.history import HistoryLog
from apihive.models import (
    KeyValueEntry,
    RequestDraft,
    ResolvedRequest,
    TransportResponse,
)
from apihive.transport import TransportError


class RecordingTransport:
    """Transport that returns a canned response and keeps every request sent."""

    def __init__(self, response: TransportResponse | None = None) -> None:
        self.response = response or TransportResponse(
            status=200, status_text="OK", headers={}, body_text=""
        )
        self.sent: list[ResolvedRequest] = []

    async def send(self, request: ResolvedRequest) -> TransportResponse:
        self.sent.append(request)
        return self.response


class FailingTransport:
    """Transport whose send() always raises the given exception."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or TransportError("Connection error: [Errno 111] Connection refused")
        self.calls = 0

    async def send(self, request: ResolvedRequest) -> TransportResponse:
        self.calls += 1
        raise self.error


def entry(key: str, value: str = "", enabled: bool = True) -> KeyValueEntry:
    """Shorthand for a KeyValueEntry in tests."""
    return KeyValueEntry(key=key, value=value, enabled=enabled)


@pytest.fixture
def make_draft() -> Callable[..., RequestDraft]:
    """Factory for RequestDraft with test-friendly defaults.

    Prefer this over constructing RequestDraft directly: the default draft is
    a bodyless GET to https://api.example.com/users.
    """

    def _make(**overrides) -> RequestDraft:
        fields = {
            "name": "List users",
            "method": "GET",
            "url": "https://api.example.com/users",
            "body": "",
        }
        fields.update(overrides)
        return RequestDraft(**fields)

    return _make


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def history() -> HistoryLog:
    return HistoryLog()


SAMPLE_WORKSPACE = """\
settings:
  timeout: 5
  follow_redirects: false

environments:
  - name: dev
    variables:
      - key: base_url
        current_value: https://dev-api.example.com
      - key: api_token
        current_value: s3cret
        sensitive: true
      - key: page_size
        current_value: 25
  - name: prod
    variables:
      - key: base_url
        current_value: https://api.example.com

requests:
  - name: List users
    method: get
    url: "{{base_url}}/v1/users"
    params:
      - key: limit
        value: "{{page_size}}"
      - key: debug
        value: "1"
        enabled: false
    headers:
      - key: Accept
        value: application/json
    auth:
      type: bearer
      token: literal-token
  - name: Create user
    method: POST
    url: "{{base_url}}/v1/users"
    body_type: json
    body: '{"name": "{{user}}"}'
    auth:
      type: api_key
      key: api_key
      value: k-123
      placement: query
"""


@pytest.fixture
def workspace_file(tmp_path: Path) -> Path:
    path = tmp_path / "workspace.yaml"
    path.write_text(SAMPLE_WORKSPACE, encoding="utf-8")
    return path
