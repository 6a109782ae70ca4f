"""Maintenance endpoints."""

import logging

from fastapi import APIRouter, Depends

from cadence.cache import Cache, get_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/cache/cleanup")
async def cleanup_cache(cache: Cache = Depends(get_cache)):
    """Drop expired cache entries."""
    logger.info("Starting cache cleanup...")
    removed = await cache.cleanup_expired()
    logger.info(f"Cache cleanup completed, removed {removed} entries")
    return {"removed": removed}
