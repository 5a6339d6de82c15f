"""
EAS Station - Emergency Alert System
Copyright (c) 2025 Timothy Kramer (KR8MER)

This file is part of EAS Station.

EAS Station is dual-licensed software:
- GNU Affero General Public License v3 (AGPL-3.0) for open-source use
- Commercial License for proprietary use

You should have received a copy of both licenses with this software.
For more information, see LICENSE and LICENSE-COMMERCIAL files.

IMPORTANT: This software cannot be rebranded or have attribution removed.
See NOTICE file for complete terms.

Repository: https://github.com/KR8MER/eas-station
"""

"""
Caching configuration and the response cache service.

Provides Flask-Caching integration with configurable backend and timeouts
so repeated identical data requests are answered without touching the
database.
"""

import logging
import os
from typing import Optional, Union

from flask import Flask
from flask_caching import Cache

from .responses import ResponseEnvelope

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_TTL = 60


def init_cache(app: Flask) -> Cache:
    """Create a Flask-Caching instance bound to ``app``.

    Configures caching based on environment variables:
    - CACHE_TYPE: Backend type (SimpleCache, RedisCache, FileSystemCache, ...)
    - CACHE_DEFAULT_TIMEOUT: Default cache timeout in seconds
    - CACHE_DIR: Directory for filesystem cache
    - CACHE_REDIS_URL: Redis connection URL

    Values already present in ``app.config`` win over the environment so
    tests and embedding code can pin a backend.

    Note: the in-process SimpleCache is the default. Multi-worker deployments
    that want a shared cache must switch to Redis.
    """
    cache_type = app.config.get('CACHE_TYPE') or os.environ.get('CACHE_TYPE', 'SimpleCache')
    cache_default_timeout = int(
        app.config.get('CACHE_DEFAULT_TIMEOUT')
        or os.environ.get('CACHE_DEFAULT_TIMEOUT', '300')
    )

    config = {
        'CACHE_TYPE': cache_type,
        'CACHE_DEFAULT_TIMEOUT': cache_default_timeout,
    }

    # Configure based on cache type
    if cache_type in ('filesystem', 'FileSystemCache'):
        cache_dir = app.config.get('CACHE_DIR') or os.environ.get('CACHE_DIR', '/tmp/flood-data-cache')
        config['CACHE_DIR'] = cache_dir
        os.makedirs(cache_dir, exist_ok=True)
    elif cache_type in ('redis', 'RedisCache'):
        redis_url = app.config.get('CACHE_REDIS_URL') or os.environ.get(
            'CACHE_REDIS_URL', 'redis://redis:6379/0'
        )
        config['CACHE_REDIS_URL'] = redis_url

    app.config.update(config)
    cache = Cache()
    cache.init_app(app)
    logger.info("Response cache backend: %s", cache_type)
    return cache


def request_signature(path: str, query_string: Union[bytes, str, None] = None) -> str:
    """Cache key for a request: the literal path plus the raw query string.

    Parameter order is significant; ``?a=1&b=2`` and ``?b=2&a=1`` are
    different keys.
    """
    if isinstance(query_string, bytes):
        query_string = query_string.decode('latin-1')
    if query_string:
        return f"{path}?{query_string}"
    return path


class ResponseCache:
    """Finished :class:`ResponseEnvelope` objects keyed by request signature.

    Expired entries read as misses. Entries are only ever replaced whole.
    Concurrent misses on one signature may each rebuild and store the
    response; the last write wins.
    """

    def __init__(self, cache: Cache, default_ttl: int = DEFAULT_RESPONSE_TTL):
        self.cache = cache
        self.default_ttl = default_ttl

    def get(self, signature: str) -> Optional[ResponseEnvelope]:
        envelope = self.cache.get(signature)
        if envelope is None:
            return None
        if not isinstance(envelope, ResponseEnvelope):
            logger.warning("Discarding unexpected cache entry for %s", signature)
            self.cache.delete(signature)
            return None
        return envelope

    def put(self, signature: str, envelope: ResponseEnvelope, ttl: Optional[int] = None) -> None:
        timeout = self.default_ttl if ttl is None else ttl
        if timeout <= 0:
            # Flask-Caching treats 0 as "never expires".
            logger.debug("Not caching %s (ttl=%s)", signature, timeout)
            return
        self.cache.set(signature, envelope, timeout=timeout)

    def clear(self) -> None:
        self.cache.clear()
