"""Transport HTTP (requests)."""

from api_cache.infrastructure.http.session import create_session

__all__ = ["create_session"]
