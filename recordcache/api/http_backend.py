"""
Async REST backend for records.
Maps sync operations onto HTTP verbs against the record locator:
create -> POST, read -> GET, update -> PUT, delete -> DELETE.
"""

import logging
from typing import Any, Mapping

import httpx

from recordcache.api.errors import BackendError
from recordcache.types import OperationKind

logger = logging.getLogger(__name__)

_METHODS = {
    OperationKind.CREATE: "POST",
    OperationKind.READ: "GET",
    OperationKind.UPDATE: "PUT",
    OperationKind.DELETE: "DELETE",
}


class HttpBackend:
    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None, headers: Mapping[str, str] | None = None):
        self.base_url = base_url.rstrip("/")
        if client is None:
            # Connect timeout is short to fail fast
            client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=30.0),
                limits=httpx.Limits(max_keepalive_connections=20, max_connections=50),
                follow_redirects=True,
            )
        self.client = client
        self.headers = {"Accept": "application/json", **(headers or {})}

    async def close(self):
        await self.client.aclose()

    def _endpoint(self, record: Any) -> str:
        return "/" + record.url().lstrip("/")

    async def sync(self, kind: OperationKind, record: Any, options: Mapping[str, Any]) -> None:
        success = options.get("success")
        error = options.get("error")
        method = _METHODS[kind]
        url = self._endpoint(record)
        body = record.to_dict() if kind in (OperationKind.CREATE, OperationKind.UPDATE) else None
        params = options.get("params")
        logger.debug(f"http_backend {method} {url}")

        try:
            response = await self.client.request(method, url, json=body, params=params, headers=self.headers)
        except httpx.HTTPError as e:
            logger.error(f"Connection error to {url}: {e}")
            if error is not None:
                error(BackendError(str(e) or type(e).__name__, locator=record.url(), url=url), None)
            return

        if response.status_code == 404 and kind is OperationKind.READ:
            # Empty read, reported as "not found" by the caching sync
            if success is not None:
                success(None, response)
            return
        if response.status_code >= 400:
            err = BackendError(
                response.reason_phrase or "request failed",
                locator=record.url(),
                status_code=response.status_code,
                url=str(response.request.url),
                request_id=response.headers.get("X-Request-Id"),
            )
            if error is not None:
                error(err, response)
            return

        result = response.json() if response.content else None
        if result is None and kind is not OperationKind.READ:
            result = record.to_dict()
        if success is not None:
            success(result, response)
