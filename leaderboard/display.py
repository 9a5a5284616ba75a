"""
Terminal leaderboard display.

Follows a running leaderboard server through a SyncController and
reprints the ranking whenever it or the connection state changes.

Usage:
    python -m leaderboard.display --url http://localhost:8000
"""

import argparse
import asyncio
import logging
from typing import List, Optional, Sequence

from . import config
from .models import TeamRecord, TeamStatus
from .sync import ConnectionState, HttpSnapshotFetcher, SSEChangeChannel, SyncController

logger = logging.getLogger(__name__)

STATE_LABELS = {
    ConnectionState.CONNECTING: "connecting...",
    ConnectionState.CONNECTED: "live",
    ConnectionState.POLLING: "polling (live updates unavailable)",
    ConnectionState.DISCONNECTED: "disconnected",
}


def render_board(teams: Sequence[TeamRecord], state: ConnectionState, loaded: bool = True) -> str:
    """Format the ranking as a plain-text table."""
    lines = [
        "=" * 50,
        f"LEADERBOARD  [{STATE_LABELS[state]}]",
        "=" * 50,
    ]

    if not loaded:
        lines.append("Loading...")
        return "\n".join(lines)
    if not teams:
        lines.append("No teams yet.")
        return "\n".join(lines)

    width = max(len(t.name) for t in teams)
    for rank, team in enumerate(teams, start=1):
        line = f"{rank:>3}. {team.name:<{width}}  {team.score:>6}"
        if team.status is not TeamStatus.ACTIVE:
            line += f"  ({team.status.value})"
        lines.append(line)
    return "\n".join(lines)


class TerminalDisplay:
    """Prints the board each time the controller reports a change."""

    def __init__(self, controller: SyncController):
        self.controller = controller
        self._teams: List[TeamRecord] = []
        controller.on_teams_changed = self._on_teams_changed
        controller.on_connection_change = self._on_connection_change

    def _on_teams_changed(self, teams: List[TeamRecord]) -> None:
        self._teams = teams
        self.render()

    def _on_connection_change(self, state: ConnectionState) -> None:
        self.render()

    def render(self) -> None:
        print(render_board(self._teams, self.controller.connection_state, self.controller.loaded))
        print()


async def run(
    url: str,
    connect_timeout: float,
    poll_interval: float,
    duration: Optional[float] = None,
) -> None:
    """Follow the server at ``url`` until cancelled or ``duration`` elapses."""
    controller = SyncController(
        HttpSnapshotFetcher(url),
        SSEChangeChannel(url),
        connect_timeout=connect_timeout,
        poll_interval=poll_interval,
    )
    TerminalDisplay(controller)

    async with controller:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for the display."""
    parser = argparse.ArgumentParser(description='Show a live leaderboard in the terminal')
    parser.add_argument('--url', default=config.LEADERBOARD_URL,
                        help='Leaderboard server base URL')
    parser.add_argument('--connect-timeout', type=float, default=config.CONNECT_TIMEOUT_SECONDS,
                        help='Seconds to wait for live updates before polling')
    parser.add_argument('--poll-interval', type=float, default=config.POLL_INTERVAL_SECONDS,
                        help='Seconds between snapshot polls while degraded')
    parser.add_argument('--duration', type=float, default=None,
                        help='Exit after this many seconds (default: run until Ctrl+C)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(run(args.url, args.connect_timeout, args.poll_interval, args.duration))
    except KeyboardInterrupt:
        print("\n[*] Stopped")


if __name__ == '__main__':
    main()
