"""
Application context.

Holds every process-wide resource (database engine, HTTP client, Redis,
geocoder, mailer, live update hub, notification dispatcher). It is built
once in the application lifespan, stored on `app.state.context`, and closed
on shutdown.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from backend.app.core.config import Settings
from backend.app.core.redis_client import create_redis
from backend.app.db.session import Base, create_engine, create_session_factory
from backend.app.services.geocoding import NominatimGeocoder
from backend.app.services.live_updates import BroadcastHub
from backend.app.services.mailer import EmailClient
from backend.app.services.notification_service import NotificationDispatcher

logger = logging.getLogger("parcel_delivery.context")


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker
    geocoder: Any
    mailer: Any
    hub: BroadcastHub
    notifier: NotificationDispatcher
    http_client: Optional[httpx.AsyncClient] = None
    redis: Any = None

    @classmethod
    async def start(cls, settings: Settings) -> "AppContext":
        """Build the production context and create tables."""
        engine = create_engine(settings)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        http_client = httpx.AsyncClient()

        redis = None
        if settings.live_updates_backend == "redis":
            redis = create_redis(settings)

        hub = BroadcastHub(redis=redis, channel=settings.live_updates_channel)
        await hub.start()

        geocoder = NominatimGeocoder(
            http_client,
            settings.geocoder_url,
            locality=settings.geocoder_locality,
            user_agent=settings.geocoder_user_agent,
            timeout=settings.geocoder_timeout_seconds,
        )
        mailer = EmailClient(
            http_client,
            settings.mail_api_url,
            settings.mail_api_key,
            settings.mail_from,
            timeout=settings.mail_timeout_seconds,
        )

        logger.info("Application context started (live updates: %s)", settings.live_updates_backend)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=create_session_factory(engine),
            geocoder=geocoder,
            mailer=mailer,
            hub=hub,
            notifier=NotificationDispatcher(mailer, hub),
            http_client=http_client,
            redis=redis,
        )

    async def close(self) -> None:
        """Flush pending notifications, then release every resource."""
        await self.notifier.drain()
        await self.hub.stop()

        if self.http_client is not None:
            await self.http_client.aclose()
        if self.redis is not None:
            await self.redis.aclose()

        await self.engine.dispose()
        logger.info("Application context closed")


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the running application context."""
    return request.app.state.context
