"""
Caching sync: wraps a backend sync function so that every create/read/update/
delete goes through a RecordCache.

A backend sync is an async callable sync(kind, record, options). It must call
options["success"](result, meta) or options["error"](err, meta) before its
coroutine returns; a hook called after that is logged and ignored. Records
handed to sync expose `id` and `url()`.
"""
import logging
from typing import Any, Mapping

import trio

from recordcache.api.errors import BackendError
from recordcache.cache.record_cache import RecordCache
from recordcache.sync.completion import Completion
from recordcache.sync.controller import ReadCoalescingController, not_found_if_empty
from recordcache.types import OperationKind, Outcome, SyncFunction

logger = logging.getLogger(__name__)


async def invoke_backend(
    wrapped_sync: SyncFunction,
    kind: OperationKind,
    record: Any,
    options: Mapping[str, Any],
) -> Outcome:
    """
    Runs one backend operation with our own completion hooks in place of the
    caller's, and returns what the backend reported. Never raises for backend
    failures: they come back as Outcome.error.
    """
    received = Completion()
    returned = False

    def receive(outcome: Outcome) -> None:
        if returned:
            logger.warning(
                "backend completed %s of %s after returning, ignored: %r",
                kind.value, record.url(), outcome,
            )
            return
        received.resolve(outcome)

    def on_success(result: Any = None, meta: Any = None) -> None:
        receive(Outcome(result=result, meta=meta))

    def on_error(err: BaseException, meta: Any = None) -> None:
        receive(Outcome(error=err, meta=meta))

    forwarded = dict(options)
    forwarded["success"] = on_success
    forwarded["error"] = on_error
    try:
        await wrapped_sync(kind, record, forwarded)
    except Exception as exc:
        if received.resolved:
            logger.exception("backend raised after completing %s of %s", kind.value, record.url())
        else:
            on_error(exc)
    returned = True
    if received.outcome is None:
        return Outcome(error=BackendError(
            f"backend returned without completing {kind.value}", locator=record.url()
        ))
    return received.outcome


def caching_sync(wrapped_sync: SyncFunction, cache: RecordCache | None = None):
    """
    Returns an async sync(method, record, options=None) -> Outcome.

    method is an OperationKind or its value ("create", "read", "update",
    "delete"). options["success"]/options["error"] are the caller's
    continuations, exactly one of them is called; every other option is
    passed to the backend untouched. Without a cache the backend is called
    directly.
    """
    controller = ReadCoalescingController(cache) if cache is not None else None

    async def sync(method: OperationKind | str, record: Any, options: Mapping[str, Any] | None = None) -> Outcome:
        kind = OperationKind(method)
        backend_options = dict(options or {})
        completion = Completion(backend_options.pop("success", None), backend_options.pop("error", None))

        async def call_backend() -> Outcome:
            return await invoke_backend(wrapped_sync, kind, record, backend_options)

        if controller is None:
            with trio.CancelScope(shield=True):
                outcome = await call_backend()
            if kind is OperationKind.READ:
                outcome = not_found_if_empty(outcome, record.url(), None)
            completion.resolve(outcome)
            return await completion.wait()

        if kind is OperationKind.READ:
            return await controller.read(record, call_backend, completion)
        if kind in (OperationKind.CREATE, OperationKind.UPDATE):
            return await controller.write(record, call_backend, completion)
        return await controller.delete(record, call_backend, completion)

    sync.cache = cache  # type: ignore[attr-defined]
    return sync
