"""
opdispatch.wallet.signer
========================

Reference signer: an Ed25519 key bound to an identity.

`LocalSigner` satisfies the `opdispatch.protocols.Signer` protocol. On
`sign_and_submit` it finalizes the operation for its own identity (unless
already frozen), signs the canonical SignBytes, packs the signed envelope and
submits it through the network client, then waits for the receipt.

Notes
-----
- The private key never leaves this object; `repr()` redacts it.
- Signing is deterministic (Ed25519), so the same frozen operation always
  yields the same envelope bytes.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Union

from opdispatch.keys import PrivateKey, PublicKey
from opdispatch.ops import encode
from opdispatch.ops.staged import StagedOperation
from opdispatch.types.core import EntityId, Receipt

log = logging.getLogger(__name__)

__all__ = ["LocalSigner"]


class _SubmittingNetwork(Protocol):
    """Minimal interface expected from `opdispatch.rpc.client.RpcNetworkClient`."""

    async def finalize(self, op: StagedOperation, payer_id: Optional[EntityId] = None) -> StagedOperation: ...

    async def submit_and_wait(self, raw: bytes, **wait_kw: Any) -> Receipt: ...


class LocalSigner:
    def __init__(
        self,
        identity_id: Union[str, EntityId],
        private_key: Union[str, PrivateKey],
        network: _SubmittingNetwork,
    ) -> None:
        self._identity = EntityId.parse(identity_id)
        self._key = private_key if isinstance(private_key, PrivateKey) else PrivateKey.from_string(private_key)
        self._network = network

    def __repr__(self) -> str:
        return f"LocalSigner(identity={self._identity}, key=<redacted>)"

    def get_identity_id(self) -> EntityId:
        return self._identity

    async def get_public_key(self) -> PublicKey:
        return self._key.public_key

    def sign(self, op: StagedOperation) -> bytes:
        """Raw signature over the operation's SignBytes."""
        return self._key.sign(encode.sign_bytes(op))

    def signed_envelope(self, op: StagedOperation) -> bytes:
        return encode.pack_signed(op, signature=self.sign(op), public_key=self._key.public_key.to_bytes_raw())

    async def sign_and_submit(self, op: StagedOperation) -> Receipt:
        if not op.frozen:
            await self._network.finalize(op, self._identity)
        raw = self.signed_envelope(op)
        log.info("submitting %s operation %s", op.kind, op.operation_id)
        return await self._network.submit_and_wait(raw)
