"""
Read-coalescing cache-aside protocol.
Decides per record whether a read is served from cache, joins an in-flight
fetch or leads a new backend fetch, and invalidates entries on writes.
"""
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping

import trio

from recordcache.api.errors import InvalidationError, NotFound
from recordcache.cache.record_cache import RecordCache
from recordcache.sync.completion import Completion
from recordcache.types import Outcome

logger = logging.getLogger(__name__)

BackendCall = Callable[[], Awaitable[Outcome]]


def not_found_if_empty(outcome: Outcome, locator: str | None, key: str | None) -> Outcome:
    if outcome.failed or outcome.result is not None:
        return outcome
    return Outcome(meta=outcome.meta, error=NotFound("not found", locator=locator, key=key))


def _result_set(result: Any) -> Iterable[Any]:
    if isinstance(result, Mapping):
        return [result]
    if isinstance(result, (list, tuple)):
        return result
    return []


class ReadCoalescingController:
    """
    Per locator a record is IDLE (not cached, nothing in flight), CACHED or
    FETCHING (a leader is reading from the backend, followers are queued).

    Backend calls are shielded from cancellation: once issued they run to
    completion, and every queued follower is resolved with the leader's
    outcome.
    """

    def __init__(self, cache: RecordCache):
        self.cache = cache

    async def read(self, record: Any, fetch: BackendCall, completion: Completion) -> Outcome:
        if self.cache.record_id(record) is None:
            return await self._read_collection(record, fetch, completion)

        key = self.cache.key_for(record)
        cached = await self.cache.get(record)
        if cached is not None:
            completion.resolve(Outcome(result=cached))
            return await completion.wait()

        locator = record.url()
        if not self.cache.inflight.join_or_lead(locator, completion):
            logger.debug(
                "read of %s joined in-flight fetch (%d waiting)",
                locator, self.cache.inflight.waiting(locator),
            )
            return await completion.wait()

        with trio.CancelScope(shield=True):
            try:
                outcome = not_found_if_empty(await fetch(), locator, key)
                if outcome.failed:
                    logger.debug("read of %s failed: %s", locator, outcome.error)
                elif self.cache.inflight.is_stale(locator):
                    logger.debug("read of %s overlapped a write, not caching the result", locator)
                else:
                    await self.cache.set(record, outcome.result)
            except Exception as exc:
                outcome = Outcome(error=exc)
            completion.resolve(outcome.for_caller())
            drained = self.cache.inflight.drain(locator, outcome)
        if drained:
            logger.debug("read of %s resolved %d coalesced readers", locator, drained)
        return await completion.wait()

    async def _read_collection(
        self, record: Any, fetch: BackendCall, completion: Completion
    ) -> Outcome:
        """Fetch-through without coalescing; members are cached unless already present."""
        with trio.CancelScope(shield=True):
            try:
                outcome = not_found_if_empty(await fetch(), None, None)
                if not outcome.failed:
                    for item in _result_set(outcome.result):
                        if self.cache.record_id(item) is None:
                            continue
                        if not await self.cache.has(item):
                            await self.cache.set(item)
            except Exception as exc:
                outcome = Outcome(error=exc)
            completion.resolve(outcome)
        return await completion.wait()

    async def write(self, record: Any, perform: BackendCall, completion: Completion) -> Outcome:
        """
        create/update: invalidate, then write. The next read repopulates the entry.
        A read in flight while the write runs is not allowed to cache its result.
        """
        locator = record.url()
        self.cache.inflight.invalidate(locator)
        try:
            await self.cache.delete(record)
        except Exception as exc:
            logger.warning(
                "cache invalidation failed for %s, writing anyway: %s",
                self.cache.key_for(record), exc,
            )
        with trio.CancelScope(shield=True):
            outcome = await perform()
            self.cache.inflight.invalidate(locator)
            completion.resolve(outcome)
        return await completion.wait()

    async def delete(self, record: Any, perform: BackendCall, completion: Completion) -> Outcome:
        key = self.cache.key_for(record)
        locator = record.url()
        self.cache.inflight.invalidate(locator)
        try:
            await self.cache.delete(record)
        except Exception as exc:
            completion.resolve(Outcome(error=InvalidationError(
                "cache invalidation failed", locator=locator, key=key, cause=exc
            )))
            return await completion.wait()
        with trio.CancelScope(shield=True):
            outcome = await perform()
            self.cache.inflight.invalidate(locator)
            completion.resolve(outcome)
        return await completion.wait()
