"""
User directory: validated writes and cached reads over the user store.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from pydantic import TypeAdapter

from shared.errors import ValidationError
from shared.logging import get_logger

from ..caching.read_through import ReadThroughCache, WriteInvalidator
from ..models import UserRecord

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..cache.redis_cache import RedisCache
    from ..persistence.postgres import UserStore
    from shared.metrics import MetricsCollector


USERS_CACHE_KEY = "users"
DEFAULT_USERS_TTL = 60

MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 255

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_USER_LIST = TypeAdapter(List[UserRecord])


def encode_users(users: Sequence[UserRecord]) -> str:
    return json.dumps([user.model_dump(mode="json") for user in users])


def decode_users(payload: str) -> List[UserRecord]:
    return _USER_LIST.validate_json(payload)


def validate_user_payload(name: Any, email: Any) -> Tuple[str, str]:
    """Return trimmed ``(name, email)`` or raise ``ValidationError``."""
    errors: Dict[str, str] = {}

    if not isinstance(name, str) or not name.strip():
        errors["name"] = "name is required"
    elif len(name.strip()) > MAX_NAME_LENGTH:
        errors["name"] = f"name must be at most {MAX_NAME_LENGTH} characters"

    if not isinstance(email, str) or not email.strip():
        errors["email"] = "email is required"
    elif len(email.strip()) > MAX_EMAIL_LENGTH:
        errors["email"] = f"email must be at most {MAX_EMAIL_LENGTH} characters"
    elif not _EMAIL_PATTERN.match(email.strip()):
        errors["email"] = "email is not a valid address"

    if errors:
        raise ValidationError("Invalid user", details=errors)

    return name.strip(), email.strip()


class UserDirectory:
    """Coordinates the user store and the ``users`` cache entry."""

    def __init__(
        self,
        store: "UserStore",
        cache: "RedisCache",
        *,
        ttl_seconds: int = DEFAULT_USERS_TTL,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("users.domain.directory")
        self.reader: ReadThroughCache[UserRecord] = ReadThroughCache(
            cache,
            encode_users,
            decode_users,
            metrics=metrics,
            cache_type="users",
        )
        self.invalidator = WriteInvalidator(cache, metrics=metrics, cache_type="users")

    async def get_collection(self, key: str = USERS_CACHE_KEY) -> Tuple[List[UserRecord], str]:
        """All users, newest first, with the source that served them."""
        return await self.reader.get_collection(key, self.ttl_seconds, self.store.list_users)

    async def insert_and_invalidate(
        self,
        name: Any,
        email: Any,
        key: str = USERS_CACHE_KEY,
    ) -> UserRecord:
        """Validate and store a user, then invalidate the cached list."""
        clean_name, clean_email = validate_user_payload(name, email)

        async def _insert() -> UserRecord:
            return await self.store.create_user(clean_name, clean_email)

        user = await self.invalidator.write(_insert, key)
        self.logger.info("User created", user_id=user.id)
        return user
