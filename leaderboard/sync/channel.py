"""
Push channels delivering team change events.

A channel is opened with two callbacks: one receiving ChangeEvents, one
receiving lifecycle status (connecting, connected, failed). Closing the
returned handle is synchronous and final; no callback fires after it.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, Dict, List, Optional

import httpx

from .broker import ChangeBroker
from .events import ChangeEvent, parse_change_payload
from .exceptions import ChannelError

logger = logging.getLogger(__name__)


class ChannelStatus(str, Enum):
    """Lifecycle of one channel subscription."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


EventCallback = Callable[[ChangeEvent], None]
StatusCallback = Callable[[ChannelStatus], None]


class ChannelHandle:
    """An open subscription. Callbacks stop as soon as it is invalidated."""

    def __init__(self, on_event: EventCallback, on_status_change: StatusCallback):
        self._on_event = on_event
        self._on_status_change = on_status_change
        self._task: Optional[asyncio.Task] = None
        self.status: Optional[ChannelStatus] = None
        self.active = True

    def emit_event(self, event: ChangeEvent) -> None:
        if self.active:
            self._on_event(event)

    def emit_status(self, status: ChannelStatus) -> None:
        if self.active and status != self.status:
            self.status = status
            self._on_status_change(status)

    def invalidate(self) -> None:
        self.active = False
        if self._task is not None and not self._task.done():
            self._task.cancel()


class ChangeChannel(ABC):
    """Base class handling handle lifecycle and failure reporting."""

    def open(self, on_event: EventCallback, on_status_change: StatusCallback) -> ChannelHandle:
        """Start subscribing. Must be called from a running event loop."""
        handle = ChannelHandle(on_event, on_status_change)
        handle.emit_status(ChannelStatus.CONNECTING)
        handle._task = asyncio.get_running_loop().create_task(self._run(handle))
        return handle

    def close(self, handle: Optional[ChannelHandle]) -> None:
        """Release a subscription. Safe on None and on closed handles."""
        if handle is None:
            return
        handle.invalidate()

    async def _run(self, handle: ChannelHandle) -> None:
        try:
            await self.stream(handle)
        except asyncio.CancelledError:
            raise
        except ChannelError as e:
            logger.warning("Change channel failed: %s", e)
            handle.emit_status(ChannelStatus.FAILED)
        except Exception as e:
            logger.warning("Change channel error: %s", e)
            handle.emit_status(ChannelStatus.FAILED)

    @abstractmethod
    async def stream(self, handle: ChannelHandle) -> None:
        """Subscribe and pump events into the handle.

        Implementations report CONNECTED once the subscription is
        acknowledged, and return or raise when it ends.
        """


class BrokerChangeChannel(ChangeChannel):
    """Subscribes straight to an in-process ChangeBroker."""

    def __init__(self, broker: ChangeBroker):
        self.broker = broker

    async def stream(self, handle: ChannelHandle) -> None:
        subscription = self.broker.subscribe()
        try:
            handle.emit_status(ChannelStatus.CONNECTED)
            while True:
                event = await subscription.get()
                if event is None:
                    raise ChannelError("Change broker dropped the subscription")
                handle.emit_event(event)
        finally:
            self.broker.unsubscribe(subscription)


@dataclass
class SSEFrame:
    """One Server-Sent Events frame."""

    event: str
    data: str
    event_id: Optional[str] = None


async def iter_sse_frames(lines: AsyncIterator[str]) -> AsyncIterator[SSEFrame]:
    """Group decoded lines of an event stream into frames."""
    data_lines: List[str] = []
    event_name: Optional[str] = None
    event_id: Optional[str] = None

    async for raw_line in lines:
        line = raw_line.rstrip("\r").lstrip("\ufeff")

        # Empty line signals dispatch
        if line == "":
            if data_lines or event_name:
                yield SSEFrame(
                    event=event_name or "message",
                    data="\n".join(data_lines),
                    event_id=event_id,
                )
            data_lines = []
            event_name = None
            event_id = None
            continue

        # Comments/keepalives begin with ':'
        if line.startswith(":"):
            continue

        if line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
        elif line.startswith("event:"):
            event_name = line[6:].strip() or event_name
        elif line.startswith("id:"):
            event_id = line[3:].strip() or event_id

    if data_lines:
        yield SSEFrame(event=event_name or "message", data="\n".join(data_lines), event_id=event_id)


class SSEChangeChannel(ChangeChannel):
    """Reads the server's /api/teams/events Server-Sent Events stream.

    The server acknowledges the subscription with a ``subscribed`` frame
    and then sends one ``change`` frame per committed mutation. Transport
    errors and refused or ended streams report FAILED. There is no
    reconnection.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.url = f"{base_url.rstrip('/')}/api/teams/events"
        self._client = client
        self._headers = {
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
        }
        if headers:
            self._headers.update(headers)

    async def stream(self, handle: ChannelHandle) -> None:
        client = self._client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))
        try:
            await self._consume(client, handle)
        finally:
            if self._client is None:
                await client.aclose()

    async def _consume(self, client: httpx.AsyncClient, handle: ChannelHandle) -> None:
        async with client.stream("GET", self.url, headers=self._headers) as resp:
            content_type = resp.headers.get("content-type", "")
            if resp.status_code != 200 or "text/event-stream" not in content_type:
                raise ChannelError(
                    f"Push stream refused [{resp.status_code}] "
                    f"content-type={content_type or '<none>'} url={self.url}"
                )

            async for frame in iter_sse_frames(resp.aiter_lines()):
                if frame.event == "subscribed":
                    logger.info("Push stream subscribed (%s)", self.url)
                    handle.emit_status(ChannelStatus.CONNECTED)
                elif frame.event == "change":
                    try:
                        event = parse_change_payload(json.loads(frame.data))
                    except (ValueError, ChannelError) as e:
                        logger.warning("Dropping malformed change frame: %s", e)
                        continue
                    handle.emit_event(event)
                else:
                    logger.debug("Ignoring push frame %r", frame.event)

        raise ChannelError("Push stream ended")
