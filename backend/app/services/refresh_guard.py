"""
Per-company refresh throttle.

The ingestion orchestrator does not serialise runs for the same company;
callers hitting the paid acquisition channel go through this guard first.
A slot is a Redis key set with NX and a TTL of REFRESH_MIN_INTERVAL_SECONDS,
so at most one refresh per company starts inside that window.
"""
from __future__ import annotations

import logging
from uuid import UUID

import redis

from .caching import _get_sync_redis
from ..core.config import get_settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "refresh_slot"


def _slot_key(company_id: UUID | str) -> str:
    return f"{KEY_PREFIX}:{company_id}"


def acquire_refresh_slot(company_id: UUID | str) -> bool:
    """
    True if the caller may start a refresh for this company now.

    Fails open when Redis is unreachable.
    """
    interval = get_settings().REFRESH_MIN_INTERVAL_SECONDS
    if interval <= 0:
        return True

    client = _get_sync_redis()
    try:
        return bool(client.set(_slot_key(company_id), "1", nx=True, ex=interval))
    except redis.RedisError as e:
        logger.warning(
            "Refresh throttle unavailable, allowing refresh: %s",
            e,
            extra={"company_id": str(company_id), "step": "throttle"},
        )
        return True
    finally:
        client.close()


def release_refresh_slot(company_id: UUID | str) -> None:
    """
    Drop the slot so a failed run can be retried immediately.
    """
    if get_settings().REFRESH_MIN_INTERVAL_SECONDS <= 0:
        return

    client = _get_sync_redis()
    try:
        client.delete(_slot_key(company_id))
    except redis.RedisError as e:
        logger.warning(
            "Could not release refresh slot: %s",
            e,
            extra={"company_id": str(company_id), "step": "throttle"},
        )
    finally:
        client.close()
