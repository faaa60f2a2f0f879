"""
Users service for Userboard.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from fastapi.staticfiles import StaticFiles

from shared.base_service import BaseService

from .cache.redis_cache import RedisCache
from .domain.users import UserDirectory
from .domain.visits import VisitCounter
from .models import (
    HealthResponse,
    StatsResponse,
    UserCreateRequest,
    UserListResponse,
    UserRecord,
)
from .persistence.postgres import UserStore


STATIC_DIR = Path(__file__).parent / "static"


class UsersService(BaseService):
    """Users service implementation."""

    def __init__(
        self,
        store: Optional[UserStore] = None,
        cache: Optional[RedisCache] = None,
        port: Optional[int] = None,
    ):
        super().__init__("users", port)

        self.store = store or UserStore(
            self.config.database_url,
            pool_size=self.config.db_pool_size,
            pool_timeout=self.config.db_pool_timeout,
            create_tables=self.config.db_create_tables,
        )
        self.cache = cache or RedisCache(
            self.config.redis_url,
            socket_timeout=self.config.redis_socket_timeout,
        )
        self.directory = UserDirectory(
            self.store,
            self.cache,
            ttl_seconds=self.config.users_cache_ttl,
            metrics=self.metrics,
        )
        self.visits = VisitCounter(self.cache)

        self._setup_users_routes()

        # Frontend; mounted last so API routes take precedence
        self.app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="frontend")

        self.app.state.users_service = self

    def _setup_users_routes(self):
        """Set up users-specific routes."""

        @self.app.get("/api/health", response_model=HealthResponse)
        async def api_health():
            """Liveness only; does not touch the store or the cache."""
            return HealthResponse(
                status="ok",
                timestamp=datetime.now(timezone.utc),
                environment=self.config.environment,
            )

        @self.app.get("/api/users", response_model=UserListResponse)
        async def list_users():
            """List users, served from cache when a fresh snapshot exists."""
            users, source = await self.directory.get_collection()
            return UserListResponse(source=source, data=users)

        @self.app.post("/api/users", response_model=UserRecord, status_code=201)
        async def create_user(request: UserCreateRequest):
            """Create a user and invalidate the cached list."""
            return await self.directory.insert_and_invalidate(request.name, request.email)

        @self.app.get("/api/stats", response_model=StatsResponse)
        async def stats():
            """Count this visit and return the running total."""
            total = await self.visits.increment_and_get()
            return StatsResponse(totalVisits=total)

    async def startup(self):
        """Start users service components."""
        await self.cache.start()
        await self.store.start()

    async def shutdown(self):
        """Stop users service components."""
        await self.cache.stop()
        await self.store.stop()
        self.logger.info("Users service stopped")

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "redis": "ok" if await self.cache.health_check() else "error",
            "postgres": "ok" if await self.store.health_check() else "error",
        }


def create_app():
    """Create users service application."""
    service = UsersService()
    return service.app


def main():
    service = UsersService()
    service.run()


if __name__ == "__main__":
    main()
