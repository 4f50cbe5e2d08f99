"""
In-process WebSocket registry for pushing notification events.

Each connection is registered under its user and organization so services can
address a single user or a whole tenant.
"""

import asyncio
import json
import logging
from collections import defaultdict
from uuid import UUID

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks open sockets per user and the organization each user is connected under."""

    def __init__(self):
        self._sockets: dict[UUID, set[WebSocket]] = defaultdict(set)
        self._orgs: dict[UUID, UUID] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: UUID, org_id: UUID | None = None):
        await websocket.accept()
        async with self._lock:
            self._sockets[user_id].add(websocket)
            if org_id:
                self._orgs[user_id] = org_id

    async def disconnect(self, websocket: WebSocket, user_id: UUID):
        async with self._lock:
            self._drop(user_id, [websocket])

    def _drop(self, user_id: UUID, sockets: list[WebSocket]) -> None:
        remaining = self._sockets.get(user_id)
        if remaining is None:
            return
        remaining.difference_update(sockets)
        if not remaining:
            self._sockets.pop(user_id, None)
            self._orgs.pop(user_id, None)

    async def send_to_user(self, user_id: UUID, event_type: str, data: dict) -> int:
        """Send an event to every socket of a user. Returns the number of sockets reached."""
        async with self._lock:
            sockets = list(self._sockets.get(user_id, ()))
        if not sockets:
            return 0

        message = json.dumps({"type": event_type, "data": data}, default=str)
        dead = []
        for ws in sockets:
            try:
                await ws.send_text(message)
            except Exception:
                dead.append(ws)

        if dead:
            logger.debug("Dropping %d closed sockets for user %s", len(dead), user_id)
            async with self._lock:
                self._drop(user_id, dead)
        return len(sockets) - len(dead)

    async def send_to_org(self, org_id: UUID, event_type: str, data: dict) -> None:
        async with self._lock:
            user_ids = [uid for uid, oid in self._orgs.items() if oid == org_id]
        for user_id in user_ids:
            await self.send_to_user(user_id, event_type, data)

    def is_connected(self, user_id: UUID) -> bool:
        return bool(self._sockets.get(user_id))

    def get_total_connections(self) -> int:
        return sum(len(s) for s in self._sockets.values())


# Singleton instance
manager = ConnectionManager()
