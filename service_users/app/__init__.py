"""
Users Service package for Userboard.

Lists and creates user records and counts API visits. It provides:

- app.main: API surface (health, users, stats) and the static frontend.
- app.persistence: PostgreSQL store for user records (source of truth).
- app.cache: Redis client wrapper with error translation.
- app.caching: Read-through and write-invalidate helpers.
- app.domain: User directory (validation + cache policy) and visit counter.

Guidelines:
- The service is stateless; rely on external cache/DB.
- Redis is never the source of truth; every write invalidates.
"""
