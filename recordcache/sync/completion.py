"""
Exactly-once resolution of a caller's success/error continuations.
"""
import logging

import trio

from recordcache.types import ErrorCallback, Outcome, SuccessCallback

logger = logging.getLogger(__name__)


class Completion:
    """
    Holds the continuations of one logical operation.

    resolve() may be called from any task (the coalescing leader drains its
    followers' completions); only the first call has an effect. An exception
    raised by a continuation is kept and re-raised by wait() in the task that
    owns the operation.
    """

    def __init__(
        self,
        success: SuccessCallback | None = None,
        error: ErrorCallback | None = None,
    ) -> None:
        self._success = success
        self._error = error
        self._done = trio.Event()
        self._callback_exc: Exception | None = None
        self.outcome: Outcome | None = None

    @property
    def resolved(self) -> bool:
        return self.outcome is not None

    def resolve(self, outcome: Outcome) -> None:
        if self.outcome is not None:
            logger.warning(
                "Ignoring second resolution of an already completed operation: %r", outcome
            )
            return
        self.outcome = outcome
        try:
            if outcome.failed:
                if self._error is not None:
                    self._error(outcome.error, outcome.meta)
            elif self._success is not None:
                self._success(outcome.result, outcome.meta)
        except Exception as exc:
            logger.exception("Continuation failed for outcome %r", outcome)
            self._callback_exc = exc
        finally:
            self._done.set()

    async def wait(self) -> Outcome:
        await self._done.wait()
        if self._callback_exc is not None:
            raise self._callback_exc
        assert self.outcome is not None
        return self.outcome
