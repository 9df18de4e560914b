from dataclasses import dataclass, field
from typing import Generic, TypeVar

from recordcache.sync.completion import Completion
from recordcache.types import Outcome

_Locator = TypeVar("_Locator")


@dataclass
class _Inflight:
    waiters: list[Completion] = field(default_factory=list)
    stale: bool = False
    "A write touched the record while the fetch was running"


class InflightRegistry(Generic[_Locator]):
    """
    Request coalescing registry.

    Tracks in-flight backend reads keyed by record locator.
    - join_or_lead(locator, completion) returns True for the leader, who must
      perform the fetch; followers are queued in arrival order.
    - invalidate(locator) marks a running fetch as stale: its result may
      predate a write and must not be cached.
    - drain(locator, outcome) resolves every follower with its own copy of
      the leader's outcome and removes the locator.

    None of the methods hits a checkpoint, so no other task can observe the
    registry halfway through a transition.
    """

    def __init__(self) -> None:
        self._inflight: dict[_Locator, _Inflight] = {}

    def join_or_lead(self, locator: _Locator, completion: Completion) -> bool:
        entry = self._inflight.get(locator)
        if entry is None:
            self._inflight[locator] = _Inflight()
            return True
        entry.waiters.append(completion)
        return False

    def invalidate(self, locator: _Locator) -> bool:
        """Returns whether a fetch was running for locator."""
        entry = self._inflight.get(locator)
        if entry is None:
            return False
        entry.stale = True
        return True

    def is_stale(self, locator: _Locator) -> bool:
        entry = self._inflight.get(locator)
        return entry is not None and entry.stale

    def drain(self, locator: _Locator, outcome: Outcome) -> int:
        """Resolve queued followers in arrival order. Returns how many were resolved."""
        entry = self._inflight.pop(locator, None)
        if entry is None:
            return 0
        for completion in entry.waiters:
            completion.resolve(outcome.for_caller())
        return len(entry.waiters)

    def is_fetching(self, locator: _Locator) -> bool:
        return locator in self._inflight

    def waiting(self, locator: _Locator) -> int:
        entry = self._inflight.get(locator)
        return len(entry.waiters) if entry is not None else 0

    def __len__(self) -> int:
        return len(self._inflight)
