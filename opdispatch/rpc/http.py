from __future__ import annotations

"""
Async HTTP JSON-RPC 2.0 client over httpx.

- Retries on transient transport failures and 429/502/503/504 with jittered
  exponential backoff. Application errors (a JSON-RPC `error` member) are
  never retried.
- The underlying `httpx.AsyncClient` can be injected, which keeps tests on
  `respx` or a transport mock.

Example:
    async with AsyncRpcClient.from_config(NetworkConfig()) as rpc:
        op_id = await rpc.request("op.submitRaw", ["<base64>"])
"""

import asyncio
import json
import logging
import random
import time
from itertools import count
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

import httpx

from ..config import NetworkConfig
from ..errors import JsonRpcCode, RpcError, from_jsonrpc_error

log = logging.getLogger(__name__)

JSON = Union[dict, list, str, int, float, bool, None]
Params = Union[Sequence[Any], Mapping[str, Any], None]

_RETRIABLE_HTTP = (429, 502, 503, 504)


class _Retriable(Exception):
    """Internal marker for a transient failure worth another attempt."""


def _jitter_backoff(base: float, factor: float, attempt: int, jitter: float) -> float:
    return base * (factor ** max(attempt - 1, 0)) + random.random() * jitter


class AsyncRpcClient:
    """JSON-RPC 2.0 over HTTP POST."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 0.25,
        backoff_factor: float = 1.8,
        backoff_jitter: float = 0.1,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_factor = backoff_factor
        self.backoff_jitter = backoff_jitter
        self._ids: Iterator[int] = count(start=int(time.time() * 1000))
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=dict(headers or {}))

    @classmethod
    def from_config(cls, config: NetworkConfig, *, client: Optional[httpx.AsyncClient] = None) -> "AsyncRpcClient":
        return cls(
            config.rpc_url,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_base=config.backoff_factor,
            headers=config.http_headers(),
            client=client,
        )

    async def __aenter__(self) -> "AsyncRpcClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # --- public API ------------------------------------------------------

    async def request(self, method: str, params: Params = None) -> JSON:
        """Perform a single JSON-RPC request and return `result` or raise RpcError."""
        payload = self._make_payload(method, params)
        last_exc: Optional[BaseException] = None
        for attempt in range(1, self.max_retries + 2):  # N retries -> N+1 attempts
            try:
                return await self._send_once(method, payload)
            except _Retriable as e:
                last_exc = e.__cause__ or e
                if attempt > self.max_retries:
                    break
                delay = _jitter_backoff(self.backoff_base, self.backoff_factor, attempt, self.backoff_jitter)
                log.warning("rpc %s attempt %d failed (%s); retrying in %.2fs", method, attempt, last_exc, delay)
                await asyncio.sleep(delay)
        raise RpcError(
            code=JsonRpcCode.TRANSPORT_ERROR,
            message="RPC transport failed",
            method=method,
            data=str(last_exc),
        )

    # --- internals -------------------------------------------------------

    def _make_payload(self, method: str, params: Params) -> Dict[str, Any]:
        if params is None:
            p: Union[List[Any], Dict[str, Any]] = []
        elif isinstance(params, Mapping):
            p = dict(params)
        elif isinstance(params, Sequence) and not isinstance(params, (str, bytes, bytearray)):
            p = list(params)
        else:
            p = [params]
        return {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": p}

    async def _send_once(self, method: str, payload: Dict[str, Any]) -> JSON:
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        try:
            r = await self._client.post(self.url, content=body)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise _Retriable(str(e)) from e
        if r.status_code in _RETRIABLE_HTTP:
            raise _Retriable(f"HTTP {r.status_code}")
        try:
            resp = r.json()
        except ValueError as e:
            raise RpcError(
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Non-JSON response from RPC",
                method=method,
                data=f"HTTP {r.status_code}: {r.text[:256]}",
                http_status=r.status_code,
            ) from e
        if not isinstance(resp, dict):
            raise RpcError(code=JsonRpcCode.INTERNAL_ERROR, message="Invalid JSON-RPC response", method=method, data=resp)
        if resp.get("error") is not None:
            err = resp["error"] if isinstance(resp["error"], dict) else {"message": str(resp["error"])}
            raise from_jsonrpc_error(err, method=method, http_status=r.status_code)
        if r.status_code >= 400:
            raise RpcError(
                code=JsonRpcCode.SERVER_ERROR,
                message=f"HTTP {r.status_code}",
                method=method,
                http_status=r.status_code,
            )
        return resp.get("result")


__all__ = ["AsyncRpcClient"]
