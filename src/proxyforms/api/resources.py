"""Process-wide resources shared by every request.

Opened once by the application lifespan, stored on ``app.state.resources``
and closed on shutdown after background tasks have drained.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from proxyforms.cache import CacheAside, CacheInvalidator, CacheStore, create_redis_client
from proxyforms.config import Settings
from proxyforms.persistence import Database
from proxyforms.tasks import TaskSpawner
from proxyforms.usage import UsageMeter

logger = logging.getLogger(__name__)

# Seconds to wait for cache populates and usage events at shutdown
DRAIN_TIMEOUT = 5.0


@dataclass
class AppResources:
    settings: Settings
    db: Database
    store: CacheStore
    spawner: TaskSpawner
    cache: CacheAside
    invalidator: CacheInvalidator
    usage: UsageMeter

    @classmethod
    def build(
        cls,
        settings: Settings,
        db: Database,
        store: CacheStore,
        usage: UsageMeter | None = None,
        spawner: TaskSpawner | None = None,
    ) -> "AppResources":
        """Wire the cache and metering helpers around a database and a store."""
        spawner = spawner or TaskSpawner()
        return cls(
            settings=settings,
            db=db,
            store=store,
            spawner=spawner,
            cache=CacheAside(store, spawner),
            invalidator=CacheInvalidator(store),
            usage=usage or UsageMeter(settings, spawner),
        )

    @classmethod
    def open(cls, settings: Settings) -> "AppResources":
        """Create connections from settings. Nothing connects until first use."""
        db = Database.from_settings(settings)
        store = CacheStore(create_redis_client(settings), prefix=settings.cache_prefix)
        logger.info("Database and cache clients created")
        return cls.build(settings, db, store)

    async def close(self) -> None:
        await self.spawner.drain(timeout=DRAIN_TIMEOUT)
        await self.usage.close()
        await self.store.close()
        await self.db.close()
        logger.info("Database and cache connections closed")
