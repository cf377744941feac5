from __future__ import annotations

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, request

from app.extensions import cache

logger = logging.getLogger(__name__)

TTL = int | Callable[[], int]


def _resolve_ttl(ttl: TTL) -> int:
    return ttl() if callable(ttl) else ttl


def cache_response(key_builder: Callable[..., str], ttl: TTL = 300) -> Callable[..., Any]:
    """Serve GET responses from the cache and store successful JSON bodies.

    ``key_builder`` receives the view's keyword arguments. ``ttl`` is seconds,
    or a callable returning seconds so it can read the app config per request.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if request.method != "GET":
                return func(*args, **kwargs)

            key = key_builder(**kwargs)
            cached = cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit {key}")
                response = current_app.make_response((cached, 200))
                response.headers["X-Cache"] = "HIT"
                return response

            response = current_app.make_response(func(*args, **kwargs))
            if 200 <= response.status_code < 300 and response.is_json:
                cache.set(key, response.get_json(), _resolve_ttl(ttl))
            response.headers["X-Cache"] = "MISS"
            return response

        return wrapper

    return decorator


def invalidate_patterns(patterns_builder: Callable[..., list[str]]) -> Callable[..., Any]:
    """Delete cache keys matching the built patterns after a successful response."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            response = current_app.make_response(func(*args, **kwargs))
            if 200 <= response.status_code < 300:
                for pattern in patterns_builder(**kwargs):
                    cache.invalidate(pattern)
            return response

        return wrapper

    return decorator
