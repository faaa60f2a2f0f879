"""
Cache package for Users Service.

Thin Redis client wrapper. Redis errors are translated into
``CacheUnavailable`` so callers decide whether a cache outage is fatal.
"""
