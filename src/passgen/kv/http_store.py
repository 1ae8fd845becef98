# Passgen: KV Backend - HTTP client
#
# Talks to the passgen KV service (passgen.api) over HTTP with httpx.
# Full keys (environment included) are sent as query parameters, so the
# remote store sees the same layout a local store would.
#
# No retries: a failed call is a BackendError (or an empty result when
# softfail is enabled).

import logging
from typing import Any, Dict, Optional

import httpx

from ..core.exceptions import BackendError
from .base import KVListing, KVRecord, KVStore

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SEC = 30
API_PREFIX = "/api/kv"


class HttpStore(KVStore):
    """Remote key/value store client.

    Usage::

        store = HttpStore("http://kv.internal:8000", token="...")
        store.put("gen_passwd/db", {"password": "...", "salt": "..."})
    """

    type_name = "http"

    def __init__(
        self,
        url: str = "http://127.0.0.1:8000",
        store_id: str = "default",
        environment: str = "",
        softfail: bool = False,
        token: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = REQUEST_TIMEOUT_SEC,
    ):
        super().__init__(store_id, environment, softfail)
        self.url = url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=self.url, timeout=timeout)
        self._token = token

    def _build_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "passgen-kv/0.1",
        }
        if self._token:
            headers["X-Session-Token"] = self._token
        return headers

    def _request(self, method: str, path: str, params=None, json=None) -> httpx.Response:
        try:
            resp = self._client.request(
                method,
                f"{API_PREFIX}{path}",
                params=params,
                json=json,
                headers=self._build_headers(),
            )
        except httpx.HTTPError as e:
            raise BackendError(f"KV service request {method} {path} failed: {e}") from e
        if resp.status_code >= 400 and resp.status_code != 404:
            raise BackendError(
                f"KV service returned {resp.status_code} for {method} {path}: "
                f"{resp.text[:200]}"
            )
        return resp

    def _json(self, resp: httpx.Response) -> Dict[str, Any]:
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"KV service returned invalid JSON: {e}") from e

    def _exists(self, full_key: str) -> bool:
        resp = self._request("GET", "/exists", params={"key": full_key})
        return bool(self._json(resp).get("exists"))

    def _get(self, full_key: str) -> Optional[KVRecord]:
        resp = self._request("GET", "/record", params={"key": full_key})
        if resp.status_code == 404:
            return None
        return KVRecord.from_dict(self._json(resp))

    def _put(self, full_key: str, record: KVRecord) -> bool:
        payload = {"key": full_key}
        payload.update(record.to_dict())
        self._request("PUT", "/record", json=payload)
        return True

    def _list(self, full_key: str) -> KVListing:
        resp = self._request("GET", "/list", params={"prefix": full_key})
        if resp.status_code == 404:
            return KVListing()
        return KVListing.from_dict(self._json(resp))

    def _delete(self, full_key: str) -> bool:
        self._request("DELETE", "/record", params={"key": full_key})
        return True

    def _delete_tree(self, full_key: str) -> bool:
        self._request("DELETE", "/tree", params={"prefix": full_key})
        return True

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
