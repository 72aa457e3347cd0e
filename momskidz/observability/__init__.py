"""Request observability for the API.

Request IDs + structlog contextvars, a Server-Timing header, and an in-memory
per-route metrics aggregate served at the metrics endpoint.
"""
