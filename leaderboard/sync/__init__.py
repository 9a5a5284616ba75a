"""Live synchronization of the ranked team list."""

from .broker import ChangeBroker
from .channel import BrokerChangeChannel, ChangeChannel, ChannelStatus, SSEChangeChannel
from .controller import ConnectionState, SyncController, SyncState
from .events import ChangeEvent, Delete, Insert, Update, parse_change_payload, to_change_payload
from .exceptions import ChannelError
from .fetcher import HttpSnapshotFetcher, SnapshotFetcher, StoreSnapshotFetcher
from .poller import FallbackPoller
from .view_model import ViewModel

__all__ = [
    "ChangeBroker",
    "BrokerChangeChannel",
    "ChangeChannel",
    "ChannelStatus",
    "SSEChangeChannel",
    "ConnectionState",
    "SyncController",
    "SyncState",
    "ChangeEvent",
    "Delete",
    "Insert",
    "Update",
    "parse_change_payload",
    "to_change_payload",
    "ChannelError",
    "HttpSnapshotFetcher",
    "SnapshotFetcher",
    "StoreSnapshotFetcher",
    "FallbackPoller",
    "ViewModel",
]
