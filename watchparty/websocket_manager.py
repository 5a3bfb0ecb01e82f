from fastapi import WebSocket
from typing import Callable, Dict, List, Optional
import asyncio
import logging

from .events import Event

logger = logging.getLogger(__name__)


class Connection:
    """One open socket plus the outbound queue its writer task drains."""

    def __init__(self, socket_id: str, websocket: WebSocket, on_dead: Callable[[str], None]):
        self.socket_id = socket_id
        self.websocket = websocket
        self.on_dead = on_dead
        self.queue: asyncio.Queue = asyncio.Queue()
        self.writer: Optional[asyncio.Task] = None

    async def pump(self):
        """Forward queued frames to the socket until it fails or is cancelled.

        A failed send retires the connection: it leaves the manager so nothing
        queues for it anymore, and the socket is closed so the receive loop
        ends and runs its cleanup.
        """
        while True:
            frame = await self.queue.get()
            try:
                await self.websocket.send_text(frame)
            except Exception as e:
                logger.error(f"❌ Error sending to {self.socket_id}: {e}")
                break

        self.on_dead(self.socket_id)
        try:
            await self.websocket.close()
        except Exception as e:
            logger.debug(f"Closing dead socket {self.socket_id} failed: {e}")


class ConnectionManager:
    """Fan-out over every open connection.

    Sends never block the caller: each frame is serialized once and queued on
    the recipients' outbound queues, and a writer task per connection delivers
    it. A slow socket only backs up its own queue; a socket whose send fails
    is dropped.
    """

    def __init__(self):
        # WebSocket connections - socket_id -> Connection
        self.active_connections: Dict[str, Connection] = {}

    async def connect(self, websocket: WebSocket, socket_id: str):
        """Accept WebSocket connection and start its writer"""
        await websocket.accept()
        connection = Connection(socket_id, websocket, self._drop)
        connection.writer = asyncio.create_task(connection.pump())
        self.active_connections[socket_id] = connection
        logger.info(f"🔌 WebSocket connected: {socket_id}")
        logger.info(f"📊 Total connections: {len(self.active_connections)}")

    def _drop(self, socket_id: str):
        if self.active_connections.pop(socket_id, None) is not None:
            logger.warning(f"❌ Dropped unreachable socket {socket_id}")
            logger.info(f"📊 Total connections: {len(self.active_connections)}")

    async def disconnect(self, socket_id: str):
        """Remove WebSocket connection and stop its writer"""
        connection = self.active_connections.pop(socket_id, None)
        if connection is None:
            return
        if connection.writer is not None:
            connection.writer.cancel()
            try:
                await connection.writer
            except asyncio.CancelledError:
                pass
        logger.info(f"❌ WebSocket disconnected: {socket_id}")
        logger.info(f"📊 Total connections: {len(self.active_connections)}")

    def connection_ids(self) -> List[str]:
        return list(self.active_connections)

    def _enqueue(self, recipients: List[Connection], event: Event):
        frame = event.to_json()
        for connection in recipients:
            connection.queue.put_nowait(frame)
        logger.debug(f"📡 Queued {event.type} for {len(recipients)} connections")

    def to_all(self, event: Event):
        self._enqueue(list(self.active_connections.values()), event)

    def to_all_except(self, connection_id: str, event: Event):
        recipients = [
            c for sid, c in self.active_connections.items() if sid != connection_id
        ]
        self._enqueue(recipients, event)

    def to_one(self, connection_id: str, event: Event):
        connection = self.active_connections.get(connection_id)
        if connection is None:
            logger.warning(f"❌ Socket {connection_id} not found in active connections")
            return
        self._enqueue([connection], event)
