"""
Shared utilities for the cacher library.

This package aggregates common building blocks consumed by the cache
components:

- config: Connection settings via pydantic-settings
- logging: Structured logging with request correlation
- errors: Canonical error types and payloads

Do not import from cacher into shared/.
"""
