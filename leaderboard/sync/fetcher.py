"""Full-snapshot fetchers for the sync controller."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from pydantic import ValidationError

from ..models import TeamRecord, canonical_order
from ..storage import DatabaseInterface, StoreError
from ..types import TeamsResponseDict

logger = logging.getLogger(__name__)


class SnapshotFetcher(ABC):
    """Pulls every team, in canonical order."""

    @abstractmethod
    async def fetch_snapshot(self) -> List[TeamRecord]:
        """Fetch all teams.

        Raises:
            StoreError: If the read fails for any reason
        """


class HttpSnapshotFetcher(SnapshotFetcher):
    """Reads the public team list endpoint of a leaderboard server."""

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/api/teams"
        self._client = client
        self._timeout = timeout

    async def _get(self) -> httpx.Response:
        headers = {"Accept": "application/json", "Cache-Control": "no-cache"}
        if self._client is not None:
            return await self._client.get(self.url, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(self.url, headers=headers)

    async def fetch_snapshot(self) -> List[TeamRecord]:
        try:
            response = await self._get()
            response.raise_for_status()
            body: TeamsResponseDict = response.json()
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to fetch teams from {self.url}: {e}") from e
        except ValueError as e:
            raise StoreError(f"Invalid JSON from {self.url}: {e}") from e

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise StoreError(f"Server refused team list: {error or 'unknown error'}")

        rows = body.get("data") or []
        if not isinstance(rows, list):
            raise StoreError(f"Team list from {self.url} is not an array: {type(rows).__name__}")

        try:
            teams = [TeamRecord.model_validate(row) for row in rows]
        except ValidationError as e:
            raise StoreError(f"Malformed team row from {self.url}: {e}") from e

        logger.debug("Fetched %d teams from %s", len(teams), self.url)
        return canonical_order(teams)


class StoreSnapshotFetcher(SnapshotFetcher):
    """Reads the record store directly, off the event loop."""

    def __init__(self, db: DatabaseInterface) -> None:
        self.db = db

    async def fetch_snapshot(self) -> List[TeamRecord]:
        teams = await asyncio.to_thread(self.db.list_teams)
        return canonical_order(teams)
