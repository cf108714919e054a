"""
Live update hub.

Pushes a bare "status-updated" signal to connected WebSocket viewers so they
can re-fetch. Delivery is at-most-once to sockets connected at the time of
the broadcast; there is no backlog for late joiners.

With the "redis" backend every process publishes to a shared channel and
relays what it receives to its own sockets, so the signal reaches viewers
attached to any worker.
"""

import asyncio
import logging
from typing import Optional, Set

from fastapi import WebSocket
from redis.exceptions import RedisError

logger = logging.getLogger("parcel_delivery.live_updates")

STATUS_UPDATED = "status-updated"


class BroadcastHub:

    def __init__(self, redis=None, channel: str = STATUS_UPDATED):
        self._redis = redis
        self._channel = channel
        self._connections: Set[WebSocket] = set()
        self._listener: Optional[asyncio.Task] = None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def start(self) -> None:
        if self._redis is not None and self._listener is None:
            self._listener = asyncio.create_task(self._relay())

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Live update relay ended with an error")
            self._listener = None

        for websocket in list(self._connections):
            try:
                await websocket.close()
            except Exception:
                logger.debug("Socket already closed during shutdown")
        self._connections.clear()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        logger.info("Viewer connected (%d active)", len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        logger.info("Viewer disconnected (%d active)", len(self._connections))

    async def broadcast(self, event: str = STATUS_UPDATED) -> int:
        """
        Broadcast `event` to every viewer.

        Returns the number of local sockets reached (0 when relayed via Redis).
        """
        if self._redis is not None:
            await self._redis.publish(self._channel, event)
            return 0
        return await self._send_local(event)

    async def _send_local(self, event: str) -> int:
        delivered = 0
        for websocket in list(self._connections):
            try:
                await websocket.send_json({"event": event})
                delivered += 1
            except Exception:
                logger.warning("Dropping viewer after failed send")
                self.disconnect(websocket)
        return delivered

    async def _relay(self) -> None:
        """Forward channel messages to local sockets until cancelled or Redis drops."""
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(self._channel)
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                event = message.get("data")
                if isinstance(event, bytes):
                    event = event.decode()
                await self._send_local(event or STATUS_UPDATED)
        except (RedisError, OSError):
            logger.exception("Live update relay lost its Redis subscription; cross-worker broadcasts stopped")
        finally:
            try:
                await pubsub.unsubscribe(self._channel)
                await pubsub.aclose()
            except (RedisError, OSError):
                logger.warning("Could not close the Redis subscription cleanly")
