"""Rendered listing views cached in Redis, scoped per clinic.

Each view has a generation counter. Entries are stored under the generation
that was current when the view was computed, and invalidation bumps the
counter, so a snapshot computed before a write can never be served after it.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Final
from uuid import UUID

import redis

from clinica.core.config import settings

logger = logging.getLogger(__name__)

DOCTORS_VIEW: Final[str] = "/doctors"
_GENERATION_KEY_TEMPLATE: Final[str] = "clinica:view:{clinic_id}:{path}:generation"
_VIEW_KEY_TEMPLATE: Final[str] = "clinica:view:{clinic_id}:{path}:{generation}"


def _get_client() -> redis.Redis:
    """Return a Redis client configured via application settings."""

    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


def _generation_key(clinic_id: UUID | str, path: str) -> str:
    return _GENERATION_KEY_TEMPLATE.format(clinic_id=clinic_id, path=path)


def _view_key(clinic_id: UUID | str, path: str, generation: str) -> str:
    return _VIEW_KEY_TEMPLATE.format(clinic_id=clinic_id, path=path, generation=generation)


def view_generation(clinic_id: UUID | str, path: str) -> str | None:
    """Return the view's current generation, or ``None`` when caching is off."""

    if not settings.view_cache_enabled:
        return None
    try:
        value = _get_client().get(_generation_key(clinic_id, path))
    except redis.RedisError:
        logger.warning("view cache read failed", extra={"path": path}, exc_info=True)
        return None
    return str(value) if value else "0"


def get_cached_view(
    clinic_id: UUID | str, path: str, generation: str | None
) -> Any | None:
    """Return the payload cached for ``generation``, or ``None`` on a miss."""

    if generation is None:
        return None
    try:
        raw_value = _get_client().get(_view_key(clinic_id, path, generation))
    except redis.RedisError:
        logger.warning("view cache read failed", extra={"path": path}, exc_info=True)
        return None
    if not raw_value:
        return None
    try:
        return json.loads(raw_value)
    except json.JSONDecodeError:
        return None


def store_view(
    clinic_id: UUID | str, path: str, generation: str | None, payload: Any
) -> None:
    """Cache a view computed while ``generation`` was current."""

    if generation is None:
        return
    try:
        _get_client().setex(
            _view_key(clinic_id, path, generation),
            settings.view_cache_ttl_seconds,
            json.dumps(payload, ensure_ascii=False, default=str),
        )
    except redis.RedisError:
        logger.warning("view cache write failed", extra={"path": path}, exc_info=True)


def invalidate_view(clinic_id: UUID | str, path: str) -> None:
    """Mark a view stale so the next read recomputes it.

    Only called after the mutation it reflects has been committed.
    """

    if not settings.view_cache_enabled:
        return
    try:
        generation = _get_client().incr(_generation_key(clinic_id, path))
    except redis.RedisError:
        logger.warning(
            "view cache invalidation failed", extra={"path": path}, exc_info=True
        )
        return
    logger.debug("view invalidated", extra={"path": path, "generation": generation})
