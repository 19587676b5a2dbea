"""
Core utilities shared across the marketplace API.

This package hosts configuration helpers, logging setup, password hashing and
the request rate limiter. Services depend on these primitives instead of
reading os.environ or FastAPI state directly.
"""
