# backend/app/core/sse.py
"""
Server-sent event (SSE) connection registry.
Tracks the live push channel of every connected user and delivers encoded
event frames to one user (send_to) or to many (broadcast). Channels that fail
to accept a frame are evicted on the spot; there is no separate liveness probe.
"""
import asyncio
import datetime as dt
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from fastapi.encoders import jsonable_encoder

logger = logging.getLogger("uvicorn.error")


class DeliveryResult(str, Enum):
    """Outcome of a single delivery attempt."""
    DELIVERED = "delivered"
    NOT_CONNECTED = "not_connected"
    EVICTED = "evicted"


class DeliveryFailure(Exception):
    """
    Raised internally when writing to a recipient's sink fails.
    Always handled inside the registry (log + eviction).
    """

    def __init__(self, recipient_id: str, cause: BaseException):
        super().__init__(f"delivery to {recipient_id} failed: {cause!r}")
        self.recipient_id = recipient_id
        self.cause = cause


class SinkClosed(Exception):
    """Raised when a frame is written to a sink that was already closed."""


# -------- wire format --------
def encode_event(event: str, data: Any) -> bytes:
    """
    Encode one event frame.

    Format: "event: <name>\\ndata: <JSON>\\n\\n", UTF-8.

    Raises:
        ValueError: if the event name is empty or contains a line break
        TypeError / ValueError: if the payload cannot be JSON-encoded
            (NaN and infinities included, they are not JSON)
    """
    if not event or "\n" in event or "\r" in event:
        raise ValueError(f"invalid event name: {event!r}")
    body = json.dumps(jsonable_encoder(data), separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return f"event: {event}\ndata: {body}\n\n".encode("utf-8")


def _field_value(line: str, name: str) -> str:
    value = line[len(name) + 1:]
    return value[1:] if value.startswith(" ") else value  # one space after the colon is part of the syntax


def decode_event(frame) -> Tuple[str, Any]:
    """
    Decode a frame produced by encode_event back into (event, data).

    Args:
        frame: bytes or str of a single blank-line terminated frame

    Raises:
        ValueError: if the frame has no event or data line, or the data is not JSON
    """
    text = frame.decode("utf-8") if isinstance(frame, (bytes, bytearray)) else frame
    event = None
    data_lines: List[str] = []
    for line in text.rstrip("\n").split("\n"):
        if line.startswith("event:"):
            event = _field_value(line, "event")
        elif line.startswith("data:"):
            data_lines.append(_field_value(line, "data"))
    if event is None or not data_lines:
        raise ValueError(f"malformed event frame: {text!r}")
    return event, json.loads("\n".join(data_lines))


# -------- sinks --------
class QueueSink:
    """
    Sink backed by an asyncio.Queue.

    The registry writes frames with send(); the streaming HTTP response reads
    them with get(). A full queue makes send() wait, which the registry bounds
    with its write timeout.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)
        self.closed = False

    async def send(self, frame: bytes) -> None:
        if self.closed:
            raise SinkClosed("sink is closed")
        await self._queue.put(frame)

    async def get(self) -> Optional[bytes]:
        """Next frame, or None once the sink is closed and drained."""
        if self.closed and self._queue.empty():
            return None
        frame = await self._queue.get()
        return frame  # None is the close marker

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(None)  # wake up a waiting reader
        except asyncio.QueueFull:
            pass  # reader drains the backlog, then sees closed


# -------- registry --------
@dataclass
class Connection:
    sink: Any
    group_id: Optional[str] = None
    connected_at: dt.datetime = field(default_factory=dt.datetime.utcnow)


class ConnectionRegistry:
    """
    Routing table from recipient id to open push channel.

    Delivery is fire-and-forget: a missing recipient is a silent drop and a
    failing one is evicted. Neither case is ever raised to the caller; the
    returned DeliveryResult exists for logging and tests.

    A sink is any object with an awaitable send(frame: bytes). Registering a
    new sink for a known recipient replaces the old one without closing it;
    closing the old transport is up to the caller.

    Data structure:
    - _connections: Dict[recipient_id, Connection]
    """

    def __init__(self, write_timeout: Optional[float] = None):
        """
        Args:
            write_timeout: seconds a single write may take before it counts as
                a delivery failure; None or 0 means unbounded
        """
        self.write_timeout = write_timeout or None
        self._connections: Dict[str, Connection] = {}

    # -------- register / unregister --------
    def register(self, recipient_id: str, sink, group_id: Optional[str] = None) -> None:
        self._connections[recipient_id] = Connection(sink=sink, group_id=group_id)
        logger.debug("[sse] registered %s (group=%s)", recipient_id, group_id)

    def unregister(self, recipient_id: str, sink=None) -> None:
        """
        Remove a recipient's channel; no-op when absent.

        Args:
            recipient_id: recipient to remove
            sink: when given, only remove if the registration still holds this
                sink, so a stale stream cannot remove its replacement
        """
        conn = self._connections.get(recipient_id)
        if conn is None:
            return
        if sink is not None and conn.sink is not sink:
            return
        del self._connections[recipient_id]
        logger.debug("[sse] unregistered %s", recipient_id)

    # -------- lookup --------
    def get(self, recipient_id: str) -> Optional[Connection]:
        return self._connections.get(recipient_id)

    def list_recipients(self) -> List[str]:
        return list(self._connections)

    def is_connected(self, recipient_id: str) -> bool:
        return recipient_id in self._connections

    def count(self) -> int:
        return len(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, recipient_id) -> bool:
        return recipient_id in self._connections

    # -------- delivery --------
    async def send_to(self, recipient_id: str, event: str, data: Any) -> DeliveryResult:
        """
        Deliver one event to a single recipient.

        Args:
            recipient_id: target recipient
            event: event name
            data: JSON-serializable payload

        Returns:
            DeliveryResult: NOT_CONNECTED when nobody is registered under
            recipient_id, EVICTED when the write failed, DELIVERED otherwise
        """
        conn = self._connections.get(recipient_id)
        if conn is None:
            return DeliveryResult.NOT_CONNECTED
        frame = encode_event(event, data)
        return await self._attempt(recipient_id, conn, frame)

    async def broadcast(
        self,
        event: str,
        data: Any,
        exclude_recipient_id: Optional[str] = None,
        target_group_id: Optional[str] = None,
    ) -> Dict[str, DeliveryResult]:
        """
        Deliver one event to every registered recipient, optionally filtered.

        Args:
            event: event name
            data: JSON-serializable payload
            exclude_recipient_id: recipient to skip (usually the sender)
            target_group_id: when set, only recipients registered with this
                group receive the event; None or "" means no filter

        Returns:
            Dict[str, DeliveryResult]: outcome per attempted recipient

        Note: one recipient's failure never stops delivery to the others.
        """
        frame = encode_event(event, data)
        results: Dict[str, DeliveryResult] = {}
        for recipient_id, conn in list(self._connections.items()):
            if recipient_id == exclude_recipient_id:
                continue
            if target_group_id and conn.group_id != target_group_id:
                continue
            # replaced or removed while an earlier write was awaited
            if self._connections.get(recipient_id) is not conn:
                continue
            results[recipient_id] = await self._attempt(recipient_id, conn, frame)
        return results

    async def _attempt(self, recipient_id: str, conn: Connection, frame: bytes) -> DeliveryResult:
        try:
            await self._write(recipient_id, conn.sink, frame)
        except DeliveryFailure as exc:
            logger.error("[sse] error sending to %s, evicting: %r", recipient_id, exc.cause)
            self.unregister(recipient_id, sink=conn.sink)
            return DeliveryResult.EVICTED
        return DeliveryResult.DELIVERED

    async def _write(self, recipient_id: str, sink, frame: bytes) -> None:
        try:
            if self.write_timeout:
                await asyncio.wait_for(sink.send(frame), timeout=self.write_timeout)
            else:
                await sink.send(frame)
        except Exception as exc:
            raise DeliveryFailure(recipient_id, exc) from exc
