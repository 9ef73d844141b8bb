"""
Cache layer: key derivation plus the cache-aside helper over the shared
Redis client.
"""

from .entity_cache import EntityCache
from .keys import (
    APPOINTMENT,
    ASTROLOGER,
    USER,
    entity_key,
    list_key,
    list_keys,
    write_invalidation_keys,
)

__all__ = [
    "APPOINTMENT",
    "ASTROLOGER",
    "USER",
    "EntityCache",
    "entity_key",
    "list_key",
    "list_keys",
    "write_invalidation_keys",
]
