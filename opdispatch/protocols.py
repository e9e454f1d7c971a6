"""
Minimal collaborator protocols.

Builders and the dispatcher depend only on these shapes; concrete signers and
network clients are injected. `opdispatch.wallet.signer.LocalSigner` and
`opdispatch.rpc.client.RpcNetworkClient` are the reference implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from opdispatch.types.core import EntityId, Receipt

if TYPE_CHECKING:  # pragma: no cover
    from opdispatch.keys import PublicKey
    from opdispatch.ops.staged import StagedOperation


@runtime_checkable
class Signer(Protocol):
    """Operating credential: identity, public key, and sign+submit."""

    def get_identity_id(self) -> EntityId: ...

    async def get_public_key(self) -> "PublicKey": ...

    async def sign_and_submit(self, op: "StagedOperation") -> Receipt: ...


@runtime_checkable
class NetworkClient(Protocol):
    """
    Freezes operations against a payer context. `finalize` must be idempotent:
    an already-frozen operation is returned unchanged.
    """

    async def finalize(self, op: "StagedOperation", payer_id: Optional[EntityId] = None) -> "StagedOperation": ...


__all__ = ["Signer", "NetworkClient"]
