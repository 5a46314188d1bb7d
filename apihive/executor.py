"""Executor - Resolves drafts, dispatches them and normalizes the outcome.

Every path out of Executor.execute() is a ResponseRecord. Missing transport,
invalid requests and transport failures are absorbed here and reported as
status 0 records; HTTP error statuses are ordinary records. Nothing raises
past execute().
"""

from __future__ import annotations

import logging
import time

import httpx

from apihive.history import HistoryLog
from apihive.models import (
    HTTP_METHODS,
    HistoryEntry,
    RequestDraft,
    ResolvedRequest,
    ResponseRecord,
    TransportResponse,
)
from apihive.request_builder import apply_query_auth, resolve_request
from apihive.transport import Transport, TransportError

logger = logging.getLogger(__name__)

# status_text values of synthetic (status 0) records
STATUS_TEXT_NO_TRANSPORT = "Error"
STATUS_TEXT_INVALID_URL = "Invalid URL"
STATUS_TEXT_INVALID_METHOD = "Invalid method"
STATUS_TEXT_FAILED = "Request failed"

MAX_PORT = 65535

# Not allowed in a domain host, whether raw or percent-encoded
_FORBIDDEN_HOST_CHARS = frozenset("\x00#%/<>?@[\\]^|")


def _is_valid_host(host: str) -> bool:
    if ":" in host:
        # IPv6 literal, already checked by httpx
        return True
    return not any(ch.isspace() or ch in _FORBIDDEN_HOST_CHARS for ch in host)


def is_valid_http_url(url: str) -> bool:
    """True if url parses as an absolute http or https URL with a usable host.

    httpx is lenient about hosts and ports, so hosts with whitespace or
    forbidden characters and ports above 65535 are rejected here.
    """
    trimmed = url.strip()
    if not trimmed:
        return False
    try:
        parsed = httpx.URL(trimmed)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    if parsed.scheme not in ("http", "https") or not parsed.host:
        return False
    if parsed.port is not None and not 0 <= parsed.port <= MAX_PORT:
        return False
    return _is_valid_host(parsed.host)


def synthetic_record(status_text: str, message: str) -> ResponseRecord:
    """A status 0 record for failures that produced no HTTP response."""
    return ResponseRecord(status=0, status_text=status_text, headers={}, body=message)


def normalize_response(
    response: TransportResponse,
    elapsed_ms: float,
) -> ResponseRecord:
    """Convert a transport response into a ResponseRecord."""
    return ResponseRecord(
        status=response.status,
        status_text=response.status_text,
        headers=dict(response.headers),
        body=response.body_text,
        duration_ms=max(0, round(elapsed_ms)),
        size_bytes=len(response.body_text.encode("utf-8")),
    )


class Executor:
    """Runs drafts through the resolve/dispatch/normalize pipeline.

    Usage:
        history = HistoryLog()
        async with HttpxTransport(settings) as transport:
            executor = Executor(transport, history=history)
            record = await executor.execute(draft, variables)

    The executor holds no per-request state, so execute() may be awaited
    concurrently for different drafts.
    """

    def __init__(
        self,
        transport: Transport | None,
        history: HistoryLog | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Object performing the HTTP exchange. None is allowed so
                       that a misconfigured host still gets a record back.
            history: Log that receives one entry per execute() call.
        """
        self._transport = transport
        self._history = history

    async def execute(
        self,
        draft: RequestDraft,
        variables: dict[str, str],
    ) -> ResponseRecord:
        """Resolve and send a draft, recording the outcome in history.

        Args:
            draft: The request to send.
            variables: Active environment variables (name -> current value).

        Returns:
            ResponseRecord for the execution. Never raises for request,
            transport or configuration problems.
        """
        resolved = resolve_request(draft, variables)
        final = resolved.model_copy(
            update={"url": apply_query_auth(resolved.url.strip(), draft.auth)}
        )

        record = await self.dispatch(final)

        # History keeps the URL as built, without query-placed API keys
        self._record_history(draft, resolved.url, record)
        return record

    async def dispatch(self, request: ResolvedRequest) -> ResponseRecord:
        """Validate and send a final request. Does not touch history.

        execute() goes through here once query auth has been applied; hosts
        that build a ResolvedRequest themselves can call it directly.
        """
        transport = self._transport
        if transport is None:
            logger.warning("No HTTP transport configured")
            return synthetic_record(STATUS_TEXT_NO_TRANSPORT, "HTTP transport not available.")

        record = self._validate(request)
        if record is not None:
            return record
        return await self._send(transport, request)

    def _validate(self, request: ResolvedRequest) -> ResponseRecord | None:
        """URL and method checks. Returns a synthetic record on failure, else None."""
        if not is_valid_http_url(request.url):
            logger.warning("Rejected invalid URL %r", request.url)
            return synthetic_record(STATUS_TEXT_INVALID_URL, "Enter a valid http or https URL.")
        if request.method not in HTTP_METHODS:
            logger.warning("Rejected unsupported method %r", request.method)
            return synthetic_record(
                STATUS_TEXT_INVALID_METHOD,
                f"Unsupported method '{request.method}'. Use one of: {', '.join(HTTP_METHODS)}.",
            )
        return None

    async def _send(self, transport: Transport, request: ResolvedRequest) -> ResponseRecord:
        """One network attempt, timed. Failures become status 0 records."""
        logger.debug("Dispatching %s %s", request.method, request.url)

        start_time = time.perf_counter()
        try:
            response = await transport.send(request)
        except TransportError as e:
            logger.warning("%s %s failed: %s", request.method, request.url, e)
            return synthetic_record(STATUS_TEXT_FAILED, str(e) or "Unknown error")
        except Exception as e:
            # Injected transports may raise anything; the caller still gets a record
            logger.warning(
                "%s %s failed with %s: %s", request.method, request.url, type(e).__name__, e
            )
            return synthetic_record(STATUS_TEXT_FAILED, str(e) or type(e).__name__)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        record = normalize_response(response, elapsed_ms)
        logger.debug(
            "%s %s -> %d in %dms (%d bytes)",
            request.method, request.url, record.status, record.duration_ms, record.size_bytes,
        )
        return record

    def _record_history(self, draft: RequestDraft, url: str, record: ResponseRecord) -> None:
        if self._history is None:
            return
        self._history.record(HistoryEntry(
            name=draft.name,
            method=draft.method,
            url=url,
            status=record.status,
            duration_ms=record.duration_ms,
            size_bytes=record.size_bytes,
        ))
