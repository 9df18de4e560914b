"""
Records and record collections bound to a sync function.

    cache = RecordCache("articles-cache", namespace="aa")
    backend = MemoryBackend("main")

    class Article(Record):
        collection_path = "articles"
        sync_handler = caching_sync(backend.sync, cache)

    article = Article(id=1)
    await article.fetch()
"""
import copy
import logging
from typing import Any, Iterator, Mapping

from recordcache.types import OperationKind, SyncFunction

logger = logging.getLogger(__name__)


async def _run(sync: SyncFunction | None, kind: OperationKind, target: Any, options: Mapping[str, Any]) -> Any:
    """
    Calls sync with continuations that chain to the caller's ones (if any)
    and turns the outcome into a return value or an exception.
    """
    if sync is None:
        raise TypeError(f"{type(target).__name__} has no sync_handler")
    options = dict(options)
    user_success = options.pop("success", None)
    user_error = options.pop("error", None)
    outcome: dict[str, Any] = {}

    def on_success(result: Any, meta: Any) -> None:
        outcome["result"] = result
        if user_success is not None:
            user_success(result, meta)

    def on_error(err: BaseException, meta: Any) -> None:
        outcome["error"] = err
        if user_error is not None:
            user_error(err, meta)

    options["success"] = on_success
    options["error"] = on_error
    await sync(kind, target, options)
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")


class Record:
    """An identified, mutable bag of named fields."""

    id_attribute = "id"
    collection_path = "records"
    "Locator of the collection; a persisted record lives at collection_path/id"
    sync_handler: SyncFunction | None = None

    def __init__(self, attributes: Mapping[str, Any] | None = None, **fields: Any):
        self.attributes: dict[str, Any] = {}
        self.set(attributes or {}, **fields)

    @property
    def id(self) -> Any:
        return self.attributes.get(self.id_attribute)

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def set(self, attributes: Mapping[str, Any] | None = None, **fields: Any) -> "Record":
        if attributes:
            self.attributes.update(copy.deepcopy(dict(attributes)))
        if fields:
            self.attributes.update(copy.deepcopy(fields))
        return self

    def unset(self, name: str) -> "Record":
        self.attributes.pop(name, None)
        return self

    def is_new(self) -> bool:
        return self.id is None

    def url(self) -> str:
        if self.is_new():
            return self.collection_path
        return f"{self.collection_path}/{self.id}"

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self.attributes)

    def _sync(self) -> SyncFunction | None:
        return type(self).sync_handler

    async def fetch(self, **options: Any) -> dict[str, Any]:
        result = await _run(self._sync(), OperationKind.READ, self, options)
        self.set(result)
        return self.to_dict()

    async def save(self, attributes: Mapping[str, Any] | None = None, **options: Any) -> dict[str, Any]:
        if attributes:
            self.set(attributes)
        kind = OperationKind.CREATE if self.is_new() else OperationKind.UPDATE
        result = await _run(self._sync(), kind, self, options)
        if isinstance(result, Mapping):
            self.set(result)
        return self.to_dict()

    async def destroy(self, **options: Any) -> None:
        if self.is_new():
            logger.debug("destroy of unsaved %s skipped", type(self).__name__)
            return
        await _run(self._sync(), OperationKind.DELETE, self, options)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.attributes!r})"


class RecordCollection:
    """A query over every record of one type. Has no identifier."""

    id = None

    def __init__(self, record_type: type[Record], sync_handler: SyncFunction | None = None):
        self.record_type = record_type
        self.sync_handler = sync_handler if sync_handler is not None else record_type.sync_handler
        self.records: list[Record] = []

    def url(self) -> str:
        return self.record_type.collection_path

    async def fetch(self, **options: Any) -> list[Record]:
        result = await _run(self.sync_handler, OperationKind.READ, self, options)
        items = [result] if isinstance(result, Mapping) else list(result or [])
        self.records = [self.record_type(item) for item in items]
        return self.records

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)
