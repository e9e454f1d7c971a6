"""
opdispatch.rpc
==============

Network access: an async JSON-RPC transport (`AsyncRpcClient`) and the
reference Network Client built on it (`RpcNetworkClient`).
"""

from __future__ import annotations

from .client import RpcNetworkClient
from .http import AsyncRpcClient

__all__ = ["AsyncRpcClient", "RpcNetworkClient"]
