import copy
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping


class OperationKind(Enum):
    """Backend operations routed through the caching sync"""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class Outcome:
    result: Any = None
    meta: Any = None
    "Backend response metadata, handed to the continuation as second argument"
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def for_caller(self) -> "Outcome":
        """Same outcome with a private copy of the result, for one of several callers."""
        if self.result is None:
            return self
        return replace(self, result=copy.deepcopy(self.result))


SuccessCallback = Callable[[Any, Any], Any]
ErrorCallback = Callable[[BaseException, Any], Any]
SyncFunction = Callable[[OperationKind, Any, Mapping[str, Any]], Awaitable[Any]]
