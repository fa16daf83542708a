"""Realtime session bookkeeping.

A session exists from the moment a channel is accepted until it closes.
Results of queries still running when a session closes are dropped.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

# Raised by Starlette/uvicorn when sending on a socket the client has left.
SEND_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


@dataclass(eq=False)
class Session:
    """One open realtime channel.

    Sends are serialized per session; results of concurrent queries
    may still be emitted in any order.
    """

    id: str
    websocket: WebSocket
    is_open: bool = True
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def emit(self, event: str, data: dict[str, Any]) -> bool:
        """Send an event frame to the client.

        Returns:
            False if the session is closed and the event was dropped.
        """
        if not self.is_open:
            return False
        async with self._send_lock:
            try:
                await self.websocket.send_json({"event": event, "data": data})
            except SEND_ERRORS:
                self.is_open = False
                return False
        return True


class SessionRegistry:
    """Open realtime sessions keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def register(self, websocket: WebSocket) -> Session:
        session = Session(id=uuid.uuid4().hex, websocket=websocket)
        self._sessions[session.id] = session
        return session

    def deregister(self, session: Session) -> None:
        session.is_open = False
        self._sessions.pop(session.id, None)

    def __len__(self) -> int:
        return len(self._sessions)
