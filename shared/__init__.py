"""
Shared utilities for Userboard services.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI service skeleton (lifespan, middleware, handlers)

Do not import from service_* packages into shared/.
"""
