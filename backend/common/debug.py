"""Debug recorder for outbound calls.

Keeps a bounded, newest-first log of every call the service makes to
Supabase, Stripe and Printful so a developer can inspect method, URL,
payload, response and duration from the admin debug endpoints.

Recording is purely observational: wrapped calls return (or raise) exactly
what the underlying call does.
"""

import functools
import inspect
import json
import logging
import secrets
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Literal

import httpx

from common.config import settings

logger = logging.getLogger(__name__)

EntryType = Literal["supabase", "fetch", "edge-function", "upload", "error", "info"]

_MAX_BODY_CHARS = 2000


def _entry_id() -> str:
    return f"debug_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


@dataclass
class DebugEntry:
    """A single recorded call."""

    type: EntryType
    source: str
    method: str | None = None
    url: str | None = None
    request: Any = None
    response: Any = None
    duration: int | None = None  # milliseconds
    status: int | None = None
    error: str | None = None
    id: str = field(default_factory=_entry_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class DebugRecorder:
    """Bounded in-memory store of :class:`DebugEntry` records."""

    def __init__(self, capacity: int = 500, enabled: bool = False):
        self.capacity = capacity
        self.enabled = enabled
        self._entries: deque[DebugEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def add(self, entry: DebugEntry) -> DebugEntry | None:
        """Record an entry. Returns ``None`` when recording is disabled."""
        if not self.enabled:
            return None
        with self._lock:
            self._entries.appendleft(entry)
        logger.debug(f"[debug] {entry.type} {entry.method or ''} {entry.url or ''}")
        return entry

    def record(self, type: EntryType, source: str, **fields: Any) -> DebugEntry | None:
        return self.add(DebugEntry(type=type, source=source, **fields))

    @property
    def entries(self) -> list[DebugEntry]:
        """Recorded entries, newest first."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def toggle(self) -> bool:
        """Flip the enabled flag and return the new value."""
        self.enabled = not self.enabled
        return self.enabled

    def export(self) -> str:
        """Serialize all entries as a JSON document."""
        return json.dumps([e.to_dict() for e in self.entries], indent=2, default=str)


@lru_cache
def get_debug_recorder() -> DebugRecorder:
    """Get the process-wide debug recorder."""
    return DebugRecorder(
        capacity=settings.debug_recorder_capacity,
        enabled=settings.debug_recorder_enabled,
    )


def _preview(content: bytes | str | None) -> Any:
    if not content:
        return None
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError:
            return f"<{len(content)} bytes>"
    try:
        return json.loads(content)
    except (ValueError, TypeError):
        return content[:_MAX_BODY_CHARS]


def httpx_debug_hooks(
    recorder: DebugRecorder, source: str, type: EntryType = "fetch"
) -> dict[str, list]:
    """Build ``event_hooks`` for an ``httpx.AsyncClient`` that record each call.

    Usage:
        httpx.AsyncClient(event_hooks=httpx_debug_hooks(recorder, "Printful API"))
    """

    async def on_request(request: httpx.Request) -> None:
        request.extensions["debug_started"] = time.perf_counter()

    async def on_response(response: httpx.Response) -> None:
        if not recorder.enabled:
            return
        request = response.request
        started = request.extensions.get("debug_started", time.perf_counter())
        await response.aread()
        is_upload = "multipart/form-data" in request.headers.get("content-type", "")
        recorder.record(
            "error" if response.is_error else type,
            source,
            method=request.method,
            url=str(request.url),
            request=(
                {"upload": True, "size": len(request.content)}
                if is_upload
                else _preview(request.content)
            ),
            response=_preview(response.content),
            duration=int((time.perf_counter() - started) * 1000),
            status=response.status_code,
            error=response.reason_phrase if response.is_error else None,
        )

    return {"request": [on_request], "response": [on_response]}


class DebugProxy:
    """Wrap an object so every awaited method call is recorded.

    Attribute access is delegated to ``target``; coroutine methods are
    timed and recorded before and after they run. Non-callable attributes
    and synchronous methods pass through untouched.
    """

    def __init__(
        self,
        target: Any,
        recorder: DebugRecorder,
        source: str,
        type: EntryType = "supabase",
    ):
        self._target = target
        self._recorder = recorder
        self._source = source
        self._type = type

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._target, name)
        if not inspect.iscoroutinefunction(attr):
            return attr

        recorder, source, entry_type = self._recorder, self._source, self._type
        label = f"{type(self._target).__name__}.{name}"

        @functools.wraps(attr)
        async def recorded(*args: Any, **kwargs: Any) -> Any:
            request = {
                "args": [repr(a) for a in args],
                "kwargs": {k: repr(v) for k, v in kwargs.items()},
            }
            recorder.record(entry_type, source, method="CALL", url=label, request=request)
            started = time.perf_counter()
            try:
                result = await attr(*args, **kwargs)
            except Exception as e:
                recorder.record(
                    "error",
                    source,
                    method="CALL",
                    url=label,
                    request=request,
                    duration=int((time.perf_counter() - started) * 1000),
                    error=str(e),
                )
                raise
            recorder.record(
                entry_type,
                source,
                method="CALL",
                url=label,
                request=request,
                response=repr(result)[:_MAX_BODY_CHARS],
                duration=int((time.perf_counter() - started) * 1000),
                status=200,
            )
            return result

        return recorded


def observe(target: Any, source: str, type: EntryType = "edge-function") -> Any:
    """Wrap ``target`` in a :class:`DebugProxy` while recording is enabled."""
    recorder = get_debug_recorder()
    if not recorder.enabled:
        return target
    return DebugProxy(target, recorder, source, type=type)
