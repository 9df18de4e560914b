"""
In-memory persistence backend.
Implements the backend sync contract over plain dictionaries; useful as the
store behind a cache in tests and single-process tools.
"""
import copy
import itertools
import logging
from typing import Any, Mapping

import trio

from recordcache.api.errors import BackendError
from recordcache.types import OperationKind

logger = logging.getLogger(__name__)


class MemoryBackend:
    def __init__(self, name: str):
        self.name = name
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        """collection_path -> (str(id) -> attributes)"""
        self._ids = itertools.count(1)
        self.reads = 0
        "Number of read operations served, for diagnostics"

    @staticmethod
    def _collection_of(record: Any) -> str:
        if record.id is None:
            return record.url()
        return record.collection_path

    def _table(self, record: Any) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(self._collection_of(record), {})

    def _not_found(self, record: Any) -> BackendError:
        return BackendError("not found", locator=record.url(), status_code=404)

    async def sync(self, kind: OperationKind, record: Any, options: Mapping[str, Any]) -> None:
        # Yield once so concurrent operations interleave like real I/O
        await trio.sleep(0)
        success = options.get("success")
        error = options.get("error")
        try:
            result = self._apply(kind, record)
        except BackendError as exc:
            logger.debug(f"{self.name}: {kind.value} {record.url()} failed: {exc}")
            if error is not None:
                error(exc, None)
            return
        if success is not None:
            success(result, None)

    def _apply(self, kind: OperationKind, record: Any) -> Any:
        table = self._table(record)
        if kind is OperationKind.READ:
            self.reads += 1
            if record.id is None:
                return [copy.deepcopy(attrs) for attrs in table.values()]
            attrs = table.get(str(record.id))
            if attrs is None:
                raise self._not_found(record)
            return copy.deepcopy(attrs)

        if kind is OperationKind.DELETE:
            if table.pop(str(record.id), None) is None:
                raise self._not_found(record)
            return record.to_dict()

        # create and update both upsert; create assigns the identifier if missing
        attrs = record.to_dict()
        if attrs.get(record.id_attribute) is None:
            if kind is OperationKind.UPDATE:
                raise BackendError("cannot update a record without id", locator=record.url())
            attrs[record.id_attribute] = next(self._ids)
        table[str(attrs[record.id_attribute])] = attrs
        return copy.deepcopy(attrs)
