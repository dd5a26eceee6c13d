"""
In-memory TTL cache for third-party API responses
"""

import json
import logging
import hashlib
import time
from typing import Any, Optional, Dict
from collections import defaultdict

from ..config import config

logger = logging.getLogger(__name__)

class CacheService:
    """In-memory cache keyed by prefix ('api', 'geocode') and a hashed identifier"""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = config.cache.enabled if enabled is None else enabled
        self._cache = defaultdict(dict)
        self._expiry = defaultdict(dict)
        self.hits = 0
        self.misses = 0

        logger.info(f"Using in-memory response cache (enabled: {self.enabled})")

    def _make_key(self, prefix: str, identifier: str) -> str:
        """Generate a cache key with prefix and identifier"""
        # Hash the identifier so URLs with API keys never sit in memory as-is
        key_hash = hashlib.sha256(identifier.encode()).hexdigest()
        return f"{prefix}:{key_hash}"

    def _serialize_value(self, value: Any) -> str:
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize value: {e}")
            return str(value)

    def _deserialize_value(self, value: str) -> Any:
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    def _is_live(self, prefix: str, key: str) -> bool:
        """True if the key is present and unexpired; expired keys are evicted"""
        if key not in self._cache[prefix]:
            return False
        expiry_time = self._expiry[prefix].get(key, 0)
        if expiry_time == 0 or time.time() < expiry_time:  # 0 means no expiry
            return True
        del self._cache[prefix][key]
        self._expiry[prefix].pop(key, None)
        return False

    def _evict_expired(self, prefix: str) -> int:
        """Drop every expired entry under a prefix"""
        now = time.time()
        expired = [key for key, expiry_time in self._expiry[prefix].items() if expiry_time and now >= expiry_time]
        for key in expired:
            self._cache[prefix].pop(key, None)
            del self._expiry[prefix][key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired '{prefix}' entries")
        return len(expired)

    async def get(self, prefix: str, identifier: str) -> Optional[Any]:
        """
        Get a value from cache

        Args:
            prefix: Cache key prefix (e.g., 'api', 'geocode')
            identifier: Unique identifier for the cached item

        Returns:
            Cached value or None if not found/expired
        """
        if not self.enabled:
            return None

        key = self._make_key(prefix, identifier)
        if self._is_live(prefix, key):
            self.hits += 1
            logger.debug(f"Cache hit for key: {key}")
            return self._deserialize_value(self._cache[prefix][key])

        self.misses += 1
        logger.debug(f"Cache miss for key: {key}")
        return None

    async def set(self, prefix: str, identifier: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set a value in cache

        Args:
            prefix: Cache key prefix (e.g., 'api', 'geocode')
            identifier: Unique identifier for the cached item
            value: Value to cache
            ttl: Time to live in seconds (uses default if None, 0 never expires)

        Returns:
            True if stored, False if caching is disabled
        """
        if not self.enabled:
            return False

        key = self._make_key(prefix, identifier)
        if ttl is None:
            ttl = config.cache.default_ttl

        self._evict_expired(prefix)
        self._cache[prefix][key] = self._serialize_value(value)
        self._expiry[prefix][key] = time.time() + ttl if ttl > 0 else 0

        logger.debug(f"Cached value for key: {key} (TTL: {ttl}s)")
        return True

    async def delete(self, prefix: str, identifier: str) -> bool:
        """Delete a value from cache; False if it was not present"""
        if not self.enabled:
            return False

        key = self._make_key(prefix, identifier)
        if key in self._cache[prefix]:
            del self._cache[prefix][key]
            self._expiry[prefix].pop(key, None)
            logger.debug(f"Deleted cache key: {key}")
            return True

        logger.debug(f"Cache key not found for deletion: {key}")
        return False

    async def exists(self, prefix: str, identifier: str) -> bool:
        """Check if a live key exists in cache"""
        if not self.enabled:
            return False
        return self._is_live(prefix, self._make_key(prefix, identifier))

    async def clear(self, prefix: Optional[str] = None) -> int:
        """
        Clear cached entries

        Args:
            prefix: Only clear this prefix (all prefixes if None)

        Returns:
            Number of entries removed
        """
        prefixes = [prefix] if prefix else list(self._cache.keys())
        cleared_count = 0
        for p in prefixes:
            cleared_count += len(self._cache[p])
            self._cache[p].clear()
            self._expiry[p].clear()

        logger.info(f"Cleared {cleared_count} cache entries")
        return cleared_count

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        lookups = self.hits + self.misses
        return {
            'enabled': self.enabled,
            'total_entries': sum(len(keys) for keys in self._cache.values()),
            'entries_by_prefix': {p: len(keys) for p, keys in self._cache.items()},
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': self.hits / lookups if lookups else 0.0,
            'type': 'memory'
        }

# Global cache service instance
cache_service = CacheService()

# Convenience functions for common operations
async def get_api_cache(url: str) -> Optional[Dict[str, Any]]:
    """Get API response from cache"""
    return await cache_service.get('api', url)

async def set_api_cache(url: str, response: Any) -> bool:
    """Cache API response"""
    return await cache_service.set('api', url, response, config.cache.api_cache_ttl)

async def get_geocode_cache(address: str) -> Optional[Dict[str, Any]]:
    """Get geocoding result from cache"""
    return await cache_service.get('geocode', address.strip().lower())

async def set_geocode_cache(address: str, result: Dict[str, Any]) -> bool:
    """Cache geocoding result"""
    return await cache_service.set('geocode', address.strip().lower(), result, config.cache.geocode_cache_ttl)

async def get_nearby_cache(search_key: str) -> Optional[Any]:
    """Get an assembled nearby-search result from cache"""
    return await cache_service.get('nearby', search_key)

async def set_nearby_cache(search_key: str, kiosks: Any) -> bool:
    """Cache an assembled nearby-search result"""
    return await cache_service.set('nearby', search_key, kiosks, config.cache.api_cache_ttl)
