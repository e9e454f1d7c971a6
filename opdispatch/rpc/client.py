"""
opdispatch.rpc.client
=====================

`RpcNetworkClient`: reference Network Client over JSON-RPC.

Primary entry points
--------------------
- finalize(op, payer_id) -> op
    Local: assigns an operation id for `payer_id` and the default target
    endpoints, then freezes. Already-frozen operations are returned unchanged.

- submit(raw) -> str
    Sends the signed CBOR envelope (base64) via `op.submitRaw`; returns the
    operation id string reported by the node.

- get_receipt(op_id) -> Receipt | None
    `op.getReceipt`; None while the operation is pending.

- wait_for_receipt(op_id, *, timeout_s, poll_interval_s) -> Receipt
    Polls with backoff until a receipt arrives or the deadline passes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import httpx

from opdispatch.config import NetworkConfig
from opdispatch.errors import JsonRpcCode, RpcError, SubmissionError
from opdispatch.ops.staged import StagedOperation
from opdispatch.rpc.http import AsyncRpcClient
from opdispatch.types.core import EntityId, OperationId, Receipt
from opdispatch.utils.bytes import to_base64

log = logging.getLogger(__name__)


class RpcNetworkClient:
    def __init__(
        self,
        config: Optional[NetworkConfig] = None,
        *,
        rpc: Optional[AsyncRpcClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or NetworkConfig()
        self.rpc = rpc or AsyncRpcClient.from_config(self.config, client=http_client)

    async def __aenter__(self) -> "RpcNetworkClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        await self.rpc.aclose()

    # ---- NetworkClient protocol ----

    async def finalize(self, op: StagedOperation, payer_id: Optional[EntityId] = None) -> StagedOperation:
        if op.frozen:
            return op
        if payer_id is None and op.operation_id is None:
            raise ValueError("a payer id is required to finalize an operation without an explicit id")
        op_id = op.operation_id or OperationId.generate(payer_id)
        op.valid_duration = self.config.valid_duration_s
        op.freeze(operation_id=op_id, target_endpoints=self.config.default_nodes)
        log.debug("finalized %s as %s -> %s", op.kind, op.operation_id, [str(t) for t in op.target_endpoints])
        return op

    # ---- Submission / receipts ----

    async def submit(self, raw: bytes) -> str:
        if not isinstance(raw, (bytes, bytearray)):
            raise TypeError("raw must be bytes")
        result = await self.rpc.request("op.submitRaw", [to_base64(bytes(raw))])
        if not isinstance(result, str) or not result:
            raise SubmissionError(f"unexpected RPC result for op.submitRaw: {result!r}")
        return result

    async def get_receipt(self, op_id: str) -> Optional[Receipt]:
        res: Any = await self.rpc.request("op.getReceipt", [str(op_id)])
        if res in (None, False, ""):
            return None
        if isinstance(res, dict) and isinstance(res.get("receipt"), dict):
            res = res["receipt"]
        if not isinstance(res, dict):
            raise RpcError(code=JsonRpcCode.INTERNAL_ERROR, message="unexpected receipt payload", method="op.getReceipt", data=res)
        return Receipt.from_rpc_dict(res)

    async def wait_for_receipt(
        self,
        op_id: str,
        *,
        timeout_s: Optional[float] = None,
        poll_interval_s: Optional[float] = None,
        max_interval_s: float = 2.5,
        backoff: float = 1.25,
    ) -> Receipt:
        """
        Poll for a receipt until it arrives or timeout is reached.

        Raises:
            TimeoutError on timeout
            RpcError on RPC or data-shape errors
        """
        timeout = self.config.receipt_timeout if timeout_s is None else float(timeout_s)
        interval = self.config.receipt_poll_interval if poll_interval_s is None else float(poll_interval_s)
        deadline = time.monotonic() + timeout

        while True:
            rec = await self.get_receipt(op_id)
            if rec is not None:
                return rec
            if time.monotonic() >= deadline:
                raise TimeoutError(f"timeout waiting for receipt (op={op_id}, timeout_s={timeout})")
            await asyncio.sleep(interval)
            interval = min(interval * backoff, max_interval_s)

    async def submit_and_wait(self, raw: bytes, **wait_kw: Any) -> Receipt:
        op_id = await self.submit(raw)
        return await self.wait_for_receipt(op_id, **wait_kw)


__all__ = ["RpcNetworkClient"]
