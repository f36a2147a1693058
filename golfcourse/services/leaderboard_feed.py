"""
Leaderboard live feed.

Pushes an event to every open leaderboard socket whenever a submission
is stored, so clients can refresh without polling.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

from golfcourse.core.metrics import LEADERBOARD_SUBSCRIBERS

logger = logging.getLogger(__name__)


class LeaderboardFeed:
    """
    Manages leaderboard WebSocket connections and insert broadcasts.
    """

    def __init__(self):
        self._subscribers: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a leaderboard subscriber."""
        await websocket.accept()
        async with self._lock:
            self._subscribers.add(websocket)
            LEADERBOARD_SUBSCRIBERS.set(len(self._subscribers))

        await websocket.send_json({
            "type": "leaderboard_connected",
            "message": "Subscribed to submission inserts.",
        })

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a subscriber."""
        async with self._lock:
            self._subscribers.discard(websocket)
            LEADERBOARD_SUBSCRIBERS.set(len(self._subscribers))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish_insert(self, record: dict[str, Any]) -> int:
        """Broadcast a stored submission to every subscriber.

        Returns the number of sockets that received it.
        """
        message = {
            "type": "INSERT",
            "table": "submissions",
            "data": record,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        async with self._lock:
            subscribers = list(self._subscribers)

        sent = 0
        dead: list[WebSocket] = []
        for websocket in subscribers:
            try:
                await websocket.send_json(message)
                sent += 1
            except Exception as e:
                logger.debug("Dropping leaderboard subscriber: %s", e)
                dead.append(websocket)

        for websocket in dead:
            await self.disconnect(websocket)

        return sent


# Global feed instance
leaderboard_feed = LeaderboardFeed()
