"""JSON-RPC 2.0 over a pair of byte streams, framed the LSP way.

Each message is ``Content-Length: <n>\\r\\n\\r\\n`` followed by ``n`` bytes of
UTF-8 JSON. Responses are matched to requests by id; notifications are
handed to a single dispatch callback in the order they arrive.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Callable
from typing import Any

from fsharp_client.types.errors import TransportError

log = logging.getLogger(__name__)

CONTENT_LENGTH = b"content-length:"
MAX_HEADER_BYTES = 8192

NotificationDispatch = Callable[[str, Any], None]


class ResponseError(TransportError):
    """The peer answered a request with a JSON-RPC error object."""

    def __init__(self, method: str, error: dict[str, Any]) -> None:
        self.rpc_code = error.get("code", "unknown")
        self.error_message = error.get("message", "Unknown error")
        self.data = error.get("data")
        super().__init__(
            f"Request '{method}' failed with {self.rpc_code}: {self.error_message}",
            user_message="The F# language server rejected a request.",
        )


def encode_message(payload: dict[str, Any]) -> bytes:
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return b"Content-Length: " + str(len(body)).encode("ascii") + b"\r\n\r\n" + body


async def read_message(reader: asyncio.StreamReader) -> dict[str, Any] | None:
    """Read one framed message; ``None`` on a clean end of stream.

    :raises TransportError: on malformed headers or bodies
    """
    length: int | None = None
    header_bytes = 0
    while True:
        line = await reader.readline()
        if not line:
            if header_bytes:
                raise TransportError("Stream closed in the middle of a message header")
            return None
        header_bytes += len(line)
        if header_bytes > MAX_HEADER_BYTES:
            raise TransportError("Message header too long")
        stripped = line.strip()
        if not stripped:
            if length is None:
                # tolerate stray blank lines between messages
                if header_bytes == len(line):
                    header_bytes = 0
                    continue
                raise TransportError("Message header without Content-Length")
            break
        if stripped.lower().startswith(CONTENT_LENGTH):
            try:
                length = int(stripped.split(b":", 1)[1].strip())
            except ValueError as exc:
                raise TransportError(f"Invalid Content-Length header: {stripped!r}") from exc
            if length < 0:
                raise TransportError(f"Invalid Content-Length header: {stripped!r}")
    try:
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError as exc:
        raise TransportError("Stream closed in the middle of a message body") from exc
    try:
        message = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TransportError(f"Invalid JSON message body: {exc}") from exc
    if not isinstance(message, dict):
        raise TransportError("JSON-RPC message must be an object")
    return message


class JsonRpcConnection:
    """Client side of one JSON-RPC connection."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        on_notification: NotificationDispatch,
        trace: bool = False,
        name: str = "server",
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._on_notification = on_notification
        self._trace = trace
        self._name = name
        self._ids = itertools.count(1)
        self._pending: dict[int, tuple[str, asyncio.Future]] = {}
        self._reader_task: asyncio.Task | None = None
        self._closed = asyncio.Event()
        self._close_callbacks: list[Callable[[], None]] = []

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def start(self) -> None:
        if self._reader_task is None:
            self._reader_task = asyncio.create_task(self._read_loop(), name=f"jsonrpc-reader-{self._name}")

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def request(self, method: str, params: Any = None, timeout: float | None = None) -> Any:
        """Send a request and wait for its result.

        :raises ResponseError: the peer answered with an error
        :raises TransportError: the connection closed before an answer came
        :raises asyncio.TimeoutError: no answer within ``timeout``
        """
        if self.is_closed:
            raise TransportError(f"Cannot send '{method}': connection is closed")
        request_id = next(self._ids)
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = (method, future)
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            payload["params"] = params
        try:
            await self._send(payload)
            return await asyncio.wait_for(future, timeout)
        finally:
            self._pending.pop(request_id, None)

    async def notify(self, method: str, params: Any = None) -> None:
        if self.is_closed:
            raise TransportError(f"Cannot send '{method}': connection is closed")
        payload: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            payload["params"] = params
        await self._send(payload)

    async def close(self) -> None:
        """Stop reading and fail outstanding requests. Idempotent."""
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._mark_closed("connection closed by client")

    async def _send(self, payload: dict[str, Any]) -> None:
        if self._trace:
            log.debug("--> %s %s", self._name, json.dumps(payload))
        try:
            self._writer.write(encode_message(payload))
            await self._writer.drain()
        except (ConnectionError, RuntimeError) as exc:
            self._mark_closed(f"write failed: {exc}")
            raise TransportError(f"Failed to write to {self._name}: {exc}", original_error=exc) from exc

    async def _read_loop(self) -> None:
        reason = "end of stream"
        try:
            while True:
                message = await read_message(self._reader)
                if message is None:
                    break
                if self._trace:
                    log.debug("<-- %s %s", self._name, json.dumps(message))
                await self._handle(message)
        except TransportError as exc:
            reason = str(exc)
            log.error("Transport error from %s: %s", self._name, exc)
        finally:
            self._mark_closed(reason)

    async def _handle(self, message: dict[str, Any]) -> None:
        method = message.get("method")
        if method is None:
            self._resolve(message)
        elif "id" in message:
            # Server-to-client request; answering null keeps the server from blocking.
            log.debug("Answering server request %s with null", method)
            try:
                await self._send({"jsonrpc": "2.0", "id": message["id"], "result": None})
            except TransportError:
                log.debug("Could not answer server request %s", method)
        else:
            try:
                self._on_notification(method, message.get("params"))
            except Exception:
                log.exception("Notification handler for %s raised", method)

    def _resolve(self, message: dict[str, Any]) -> None:
        entry = self._pending.get(message.get("id"))
        if entry is None:
            log.debug("Dropping response for unknown request id %r", message.get("id"))
            return
        method, future = entry
        if future.done():
            return
        if "error" in message and message["error"] is not None:
            future.set_exception(ResponseError(method, message["error"]))
        else:
            future.set_result(message.get("result"))

    def _mark_closed(self, reason: str) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        log.debug("Connection to %s closed: %s", self._name, reason)
        for method, future in list(self._pending.values()):
            if not future.done():
                future.set_exception(TransportError(f"Connection closed before '{method}' was answered ({reason})"))
        for callback in self._close_callbacks:
            try:
                callback()
            except Exception:
                log.exception("Close callback raised")
