"""
opdispatch.ops.encode
=====================

Deterministic CBOR encoding for staged operations.

This module provides:
- `canonical_body_dict(op)` -> a canonical, signable dictionary view of the operation
- `schedulable_body_dict(op)` -> the subset embedded inside a schedule_create body
- `sign_bytes(op)` -> bytes to sign (CBOR of the canonical body)
- `to_bytes(op)` / `from_bytes(raw)` -> unsigned wire envelope round-trip
- `pack_signed(op, signature, public_key)` -> signed envelope ready for RPC
- `unpack(raw)` -> parsed envelope {body, sigs}

Design notes
------------
* We produce *deterministic* CBOR using `opdispatch.utils.cbor.dumps`, so
  serializing the same frozen operation twice yields identical bytes.
* The canonical "SignBytes" is the CBOR encoding of the **body** only; the
  signature list is never part of what gets signed.
* The wire envelope contains:
    {
      "body": { ... canonical body ... },
      "sigs": [ {"pubKey": <bytes>, "sig": <bytes>}, ... ],
    }
  External signers append to `sigs` without touching `body`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from opdispatch.ops.staged import StagedOperation
from opdispatch.types.core import EntityId, OperationId
from opdispatch.utils.bytes import from_base64, to_base64
from opdispatch.utils.cbor import dumps as cbor_dumps
from opdispatch.utils.cbor import loads as cbor_loads

_BODY_KEYS = (
    "kind",
    "memo",
    "operationId",
    "targets",
    "maxFee",
    "validDuration",
    "data",
)


# -----------------------------------------------------------------------------
# Canonical body (SignBytes source)
# -----------------------------------------------------------------------------


def canonical_body_dict(op: StagedOperation) -> Dict[str, Any]:
    """
    Build the canonical, signable body dictionary for an operation.

    Fields (and types):
      - kind          : str
      - memo          : str
      - operationId   : str | None
      - targets       : list[str]
      - maxFee        : int | None
      - validDuration : int (seconds)
      - data          : map (kind-specific fields)
    """
    return {
        "kind": str(op.kind),
        "memo": op.memo or "",
        "operationId": str(op.operation_id) if op.operation_id is not None else None,
        "targets": [str(t) for t in op.target_endpoints],
        "maxFee": int(op.max_fee) if op.max_fee is not None else None,
        "validDuration": int(op.valid_duration),
        "data": dict(op.body),
    }


def schedulable_body_dict(op: StagedOperation) -> Dict[str, Any]:
    """
    The part of an operation that travels inside a schedule: no id and no
    targets, since the network assigns those when the schedule executes.
    """
    return {
        "kind": str(op.kind),
        "memo": op.memo or "",
        "maxFee": int(op.max_fee) if op.max_fee is not None else None,
        "data": dict(op.body),
    }


def sign_bytes(op: StagedOperation) -> bytes:
    """
    Return the deterministic CBOR-encoded SignBytes for the operation.

    This is the exact byte string that should be signed.
    """
    return cbor_dumps(canonical_body_dict(op))


# -----------------------------------------------------------------------------
# Wire envelope
# -----------------------------------------------------------------------------


def to_bytes(op: StagedOperation, *, sigs: Optional[List[Dict[str, bytes]]] = None) -> bytes:
    env: Dict[str, Any] = {"body": canonical_body_dict(op), "sigs": list(sigs or [])}
    return cbor_dumps(env)


def to_base64_string(op: StagedOperation) -> str:
    return to_base64(to_bytes(op))


def pack_signed(op: StagedOperation, *, signature: bytes, public_key: bytes) -> bytes:
    """
    Produce a raw, signed CBOR envelope.

    Parameters
    ----------
    op : StagedOperation
        Frozen operation.
    signature : bytes
        Raw signature over `sign_bytes(op)`.
    public_key : bytes
        Raw public key bytes for the signer.
    """
    return to_bytes(op, sigs=[{"pubKey": bytes(public_key), "sig": bytes(signature)}])


def unpack(raw: bytes) -> Dict[str, Any]:
    """
    Parse a raw CBOR envelope into a Python dictionary.

    Returns a dict with (at least) keys: body, sigs.
    """
    if not isinstance(raw, (bytes, bytearray)):
        raise TypeError("raw must be bytes")
    obj = cbor_loads(bytes(raw))
    if not isinstance(obj, dict):
        raise ValueError("operation envelope must decode to a CBOR map")
    for k in ("body", "sigs"):
        if k not in obj:
            raise ValueError(f"operation envelope missing field '{k}'")
    body = obj["body"]
    if not isinstance(body, dict):
        raise ValueError("operation body must be a CBOR map")
    for k in _BODY_KEYS:
        if k not in body:
            raise ValueError(f"operation body missing field '{k}'")
    return obj


def from_bytes(raw: bytes) -> StagedOperation:
    """
    Rebuild a StagedOperation from envelope bytes. Operations that carried an
    id come back frozen, since ids are only pinned when freezing or set
    explicitly before serialization.
    """
    body = unpack(raw)["body"]
    op_id = OperationId.parse(body["operationId"]) if body["operationId"] else None
    return StagedOperation(
        kind=str(body["kind"]),
        body=dict(body["data"]),
        memo=str(body["memo"]),
        operation_id=op_id,
        target_endpoints=[EntityId.parse(t) for t in body["targets"]],
        max_fee=body["maxFee"],
        valid_duration=int(body["validDuration"]),
        frozen=op_id is not None,
    )


def from_base64_string(s: str) -> StagedOperation:
    return from_bytes(from_base64(s))


__all__ = [
    "canonical_body_dict",
    "schedulable_body_dict",
    "sign_bytes",
    "to_bytes",
    "to_base64_string",
    "pack_signed",
    "unpack",
    "from_bytes",
    "from_base64_string",
]
