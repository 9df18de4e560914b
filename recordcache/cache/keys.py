from typing import Any

KEY_SEPARATOR = ":"


def derive_key(namespace: str | None, identifier: Any) -> str:
    """
    Builds the cache key for a record: namespace:identifier.
    Absent (None) components are left out, so both missing gives "".
    """
    parts = [namespace, identifier]
    return KEY_SEPARATOR.join(str(p) for p in parts if p is not None)
