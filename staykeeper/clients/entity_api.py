from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from ..config import settings
from ..errors import EntityStoreError, NotFoundError, PermissionDeniedError, ValidationError
from ..services.change_feed import Change, ChangeCallback, SubscriberRegistry, Subscription

log = logging.getLogger(__name__)


class HttpEntityStore:
    """
    EntityStore over the service's generic /entities routes.

    Pass `client` to reuse a transport (tests hand in a FastAPI TestClient);
    otherwise a private httpx.Client is built with the configured timeout.
    Realtime is cursor polling: subscribe() registers locally and
    poll_changes() fetches /changes?after=<cursor> and dispatches.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base = (base_url if base_url is not None else settings.api_base_url).rstrip("/")
        self.headers = dict(headers or {})
        self.timeout = float(timeout if timeout is not None else settings.http_timeout_seconds)
        self._client = client
        self._owns_client = client is None
        self._subs = SubscriberRegistry()
        self.cursor = 0

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "HttpEntityStore":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base}{path}"
        try:
            r = self._http().request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise EntityStoreError(f"Timed out calling {method} {path}") from e
        except httpx.HTTPError as e:
            raise EntityStoreError(f"Request failed: {method} {path}", detail={"error": str(e)}) from e

        if r.status_code >= 400:
            try:
                body = r.json()
            except ValueError:
                body = {"detail": r.text}
            msg = str(body.get("detail") if isinstance(body, dict) else body)
            ctx = {"status_code": r.status_code, "path": path}
            if r.status_code == 404:
                raise NotFoundError(msg, detail=ctx)
            if r.status_code in (401, 403):
                raise PermissionDeniedError(msg, detail=ctx)
            if r.status_code == 422:
                raise ValidationError(msg, detail=ctx)
            raise EntityStoreError(msg, detail=ctx)

        if r.status_code == 204 or not r.content:
            return None
        return r.json()

    # -------------------------
    # EntityStore
    # -------------------------
    def list(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        for k, v in (filters or {}).items():
            # "null" on the wire is IS NULL
            params[k] = "null" if v is None else v
        if order_by:
            params["order"] = order_by
        if limit is not None:
            params["limit"] = int(limit)
        return list(self._request("GET", f"/entities/{table}", params=params) or [])

    def insert(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        return self._request("POST", f"/entities/{table}", json=dict(row))

    def update(self, table: str, row_id: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        return self._request("PATCH", f"/entities/{table}/{row_id}", json=dict(patch))

    def delete(self, table: str, row_id: str) -> None:
        self._request("DELETE", f"/entities/{table}/{row_id}")

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        return self._subs.subscribe(table, callback)

    def poll_changes(self, *, limit: Optional[int] = None) -> list[Change]:
        """Fetch changes after the cursor, advance it, dispatch to subscribers."""
        params: dict[str, Any] = {"after": self.cursor}
        if limit is not None:
            params["limit"] = int(limit)
        data = self._request("GET", "/changes", params=params) or {}
        changes = [Change.from_dict(c) for c in (data.get("changes") or [])]
        for c in changes:
            if c.id is not None and c.id > self.cursor:
                self.cursor = c.id
            self._subs.publish(c)
        self.cursor = max(self.cursor, int(data.get("cursor") or 0))
        if changes:
            log.info("polled changes", extra={"status": f"{len(changes)} change(s)"})
        return changes
