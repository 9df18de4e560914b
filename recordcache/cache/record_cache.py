"""
Named cache of record attributes.
Wraps a RamCache with key derivation and owns the in-flight read registry
used by the coalescing controller.
"""
import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from recordcache.cache.inflight import InflightRegistry
from recordcache.cache.keys import derive_key
from recordcache.cache.ram_cache import RamCache

logger = logging.getLogger(__name__)


@dataclass
class CacheOptions:
    max: int = 1000
    "Capacity in entries"
    max_age_ms: int = 60000
    "Time-to-live of an entry, in milliseconds"
    namespace: str | None = None
    "Key prefix, lets several caches share a key space"
    id_attribute: str = "id"
    "Identifier field of plain attribute mappings"


def record_attributes(record: Any) -> dict[str, Any]:
    if isinstance(record, Mapping):
        return dict(record)
    return record.to_dict()


class RecordCache:
    def __init__(self, name: str, options: CacheOptions | None = None, **overrides):
        """
        :param name: Label used in log lines.
        :param options: Cache configuration, defaults to CacheOptions().
        :param overrides: Individual CacheOptions fields (max, max_age_ms, namespace, id_attribute).
        """
        self.name = name
        self.options = dataclasses.replace(options or CacheOptions(), **overrides)
        if self.options.max < 0:
            raise ValueError("max must be >= 0")
        if self.options.max_age_ms <= 0:
            raise ValueError("max_age_ms must be > 0")
        self.store: RamCache[str] = RamCache(
            max_entries=self.options.max, max_age=self.options.max_age_ms / 1000.0
        )
        self.inflight: InflightRegistry[str] = InflightRegistry()

    def record_id(self, record: Any) -> Any:
        if isinstance(record, Mapping):
            return record.get(self.options.id_attribute)
        return getattr(record, "id", None)

    def key_for(self, record: Any) -> str:
        return derive_key(self.options.namespace, self.record_id(record))

    async def get(self, record: Any) -> dict[str, Any] | None:
        key = self.key_for(record)
        logger.debug("cache get (%s): %s", self.name, key)
        res = await self.store.get(key)
        if res is not None:
            logger.debug("cache hit (%s): %s", self.name, key)
        else:
            logger.debug("cache miss (%s): %s", self.name, key)
        return res

    async def has(self, record: Any) -> bool:
        return await self.store.has(self.key_for(record))

    async def set(self, record: Any, attributes: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        Stores a copy of the record's attributes under the record's key.
        attributes, when given, is stored instead (e.g. a fresh backend result).
        """
        key = self.key_for(record)
        logger.debug("cache set (%s): %s", self.name, key)
        if attributes is None:
            attributes = record_attributes(record)
        return await self.store.set(key, dict(attributes))

    async def delete(self, record: Any) -> None:
        key = self.key_for(record)
        logger.debug("cache del (%s): %s", self.name, key)
        await self.store.delete(key)
