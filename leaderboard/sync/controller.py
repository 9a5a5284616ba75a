"""
Sync controller for one leaderboard display session.

Owns the ViewModel and decides which data path is authoritative:

    INIT -> CONNECTING -> LIVE
                \\          |
                 +-> DEGRADED (polling, until teardown)

On start() it fetches a snapshot and opens the push channel at the same
time. If the channel does not confirm within ``connect_timeout`` seconds,
or reports failure at any point, the controller degrades to snapshot
polling for the rest of the session. Events that still arrive on the
channel while degraded are applied; every snapshot replaces the list
wholesale.

Everything runs on one asyncio loop, so mutations never interleave.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Set

from .. import config
from ..models import TeamRecord
from ..storage import StoreError
from .channel import ChangeChannel, ChannelHandle, ChannelStatus
from .events import ChangeEvent
from .fetcher import SnapshotFetcher
from .poller import FallbackPoller
from .view_model import ViewModel

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """Internal controller state."""

    INIT = "init"
    CONNECTING = "connecting"
    LIVE = "live"
    DEGRADED = "degraded"
    CLOSED = "closed"


class ConnectionState(str, Enum):
    """Connection indicator exposed to the display."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    POLLING = "polling"
    DISCONNECTED = "disconnected"


_CONNECTION_BY_STATE = {
    SyncState.INIT: ConnectionState.DISCONNECTED,
    SyncState.CONNECTING: ConnectionState.CONNECTING,
    SyncState.LIVE: ConnectionState.CONNECTED,
    SyncState.DEGRADED: ConnectionState.POLLING,
    SyncState.CLOSED: ConnectionState.DISCONNECTED,
}

TeamsListener = Callable[[List[TeamRecord]], None]
ConnectionListener = Callable[[ConnectionState], None]


class SyncController:
    """Keeps a ranked team list consistent with the server."""

    def __init__(
        self,
        fetcher: SnapshotFetcher,
        channel: ChangeChannel,
        poller: Optional[FallbackPoller] = None,
        *,
        connect_timeout: float = config.CONNECT_TIMEOUT_SECONDS,
        poll_interval: float = config.POLL_INTERVAL_SECONDS,
        on_teams_changed: Optional[TeamsListener] = None,
        on_connection_change: Optional[ConnectionListener] = None,
    ) -> None:
        self.fetcher = fetcher
        self.channel = channel
        self.poller = poller or FallbackPoller()
        self.connect_timeout = connect_timeout
        self.poll_interval = poll_interval
        self.on_teams_changed = on_teams_changed
        self.on_connection_change = on_connection_change

        self.view = ViewModel()
        self.state = SyncState.INIT
        # True once any snapshot has been applied
        self.loaded = False

        self._handle: Optional[ChannelHandle] = None
        self._deadline: Optional[asyncio.TimerHandle] = None
        self._fetches: Set[asyncio.Task] = set()

    # =========================================================================
    # PUBLIC STATE
    # =========================================================================

    @property
    def teams(self) -> List[TeamRecord]:
        return self.view.teams

    @property
    def connection_state(self) -> ConnectionState:
        return _CONNECTION_BY_STATE[self.state]

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Fetch the initial snapshot and open the push channel.

        Must be called from a running event loop, once.
        """
        if self.state is not SyncState.INIT:
            raise RuntimeError(f"Sync controller already started (state={self.state.value})")

        loop = asyncio.get_running_loop()
        self._set_state(SyncState.CONNECTING)
        if self.state is SyncState.CLOSED:
            # A listener tore the session down
            return

        task = loop.create_task(self.refresh())
        self._fetches.add(task)
        task.add_done_callback(self._fetches.discard)

        self._handle = self.channel.open(self._on_channel_event, self._on_channel_status)
        self._deadline = loop.call_later(self.connect_timeout, self._on_connect_deadline)

    def teardown(self) -> None:
        """Cancel timers and pending fetches and close the channel. Idempotent.

        No listener is called once this returns.
        """
        if self.state is SyncState.CLOSED:
            return

        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None

        self.poller.stop()
        self.channel.close(self._handle)
        self._handle = None

        for task in list(self._fetches):
            task.cancel()
        self._fetches.clear()

        self.state = SyncState.CLOSED
        logger.info("Sync session closed")

    async def __aenter__(self) -> "SyncController":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.teardown()

    async def refresh(self) -> bool:
        """Fetch a full snapshot and replace the list with it.

        A failed fetch is logged and leaves the current list untouched.

        Returns:
            True if the list changed
        """
        if self.state is SyncState.CLOSED:
            return False

        try:
            snapshot = await self.fetcher.fetch_snapshot()
        except StoreError as e:
            logger.warning("Snapshot fetch failed; keeping %d teams: %s", len(self.view), e)
            return False

        if self.state is SyncState.CLOSED:
            return False

        self.loaded = True
        if not self.view.replace(snapshot):
            return False
        logger.debug("Snapshot applied (%d teams)", len(self.view))
        self._publish_teams()
        return True

    # =========================================================================
    # CHANNEL CALLBACKS
    # =========================================================================

    def _on_channel_event(self, event: ChangeEvent) -> None:
        if self.state is SyncState.CLOSED:
            return
        if self.view.apply(event):
            logger.debug("Applied %s", type(event).__name__)
            self._publish_teams()

    def _on_channel_status(self, status: ChannelStatus) -> None:
        if self.state is SyncState.CLOSED:
            return

        if status is ChannelStatus.CONNECTED:
            if self.state is SyncState.CONNECTING:
                self.poller.stop()
                self._set_state(SyncState.LIVE)
            elif self.state is SyncState.DEGRADED:
                logger.info("Push channel confirmed after degrading; staying on polling")
        elif status is ChannelStatus.FAILED:
            self._degrade("push channel failed")

    def _on_connect_deadline(self) -> None:
        self._deadline = None
        if self.state is SyncState.CONNECTING:
            self._degrade(f"no push confirmation within {self.connect_timeout:g}s")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _degrade(self, reason: str) -> None:
        if self.state not in (SyncState.CONNECTING, SyncState.LIVE):
            return
        logger.warning("Falling back to polling: %s", reason)
        self._set_state(SyncState.DEGRADED)
        if self.state is SyncState.CLOSED:
            return
        self.poller.start(self.poll_interval, self.refresh)

    def _set_state(self, state: SyncState) -> None:
        previous = self.connection_state
        self.state = state
        logger.info("Sync state: %s", state.value)
        current = self.connection_state
        if current is not previous and self.on_connection_change is not None:
            self._notify(self.on_connection_change, current)

    def _publish_teams(self) -> None:
        if self.on_teams_changed is not None:
            self._notify(self.on_teams_changed, self.view.teams)

    @staticmethod
    def _notify(listener: Callable, value) -> None:
        try:
            listener(value)
        except Exception:
            logger.exception("Sync listener raised")
