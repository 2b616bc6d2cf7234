from edu_access.infrastructure.cache.redis_cache import (CacheService,
                                                        permissions_key)

__all__ = ["CacheService", "permissions_key"]
