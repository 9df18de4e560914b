from dataclasses import dataclass


@dataclass
class RecordCacheError(Exception):
    message: str
    locator: str | None = None
    key: str | None = None

    def __str__(self) -> str:
        bits = [self.message]
        if self.locator:
            bits.append(f"locator={self.locator}")
        if self.key:
            bits.append(f"key={self.key}")
        return " ".join(bits)


class NotFound(RecordCacheError):
    pass


@dataclass
class BackendError(RecordCacheError):
    status_code: int | None = None
    url: str | None = None
    request_id: str | None = None

    def __str__(self) -> str:
        bits = [super().__str__()]
        if self.status_code is not None:
            bits.append(f"status={self.status_code}")
        if self.request_id:
            bits.append(f"request_id={self.request_id}")
        return " ".join(bits)


@dataclass
class InvalidationError(RecordCacheError):
    cause: BaseException | None = None
