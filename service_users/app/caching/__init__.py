"""
Cache-aside helpers for Users Service.

Reads populate the cache lazily with a fixed TTL; writes delete the
affected key once the store has acknowledged them. Redis is only ever an
accelerator: a cache outage degrades reads to the store, never fails them.
"""
