"""
opdispatch.ops.staged
=====================

`StagedOperation`: one unsigned, not-yet-submitted network operation.

A staged operation is created by exactly one builder method, mutated by the
cross-cutting setters (memo, explicit id, target endpoints), frozen against a
payer by the network client, and consumed exactly once (executed, serialized
or wrapped into a schedule). After consumption it is only read for reporting.

Design notes
------------
- `body` holds the kind-specific fields as a CBOR-friendly mapping (str keys,
  ints, strs, bytes, lists, nested maps). Builders own its shape.
- Freezing pins the operation id and target endpoints. A frozen operation
  rejects further mutation; re-freezing is a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from opdispatch.errors import FrozenOperationError, OperationConsumedError
from opdispatch.types.core import EntityId, OperationId, parse_entity_ids

DEFAULT_VALID_DURATION_S = 120
MAX_MEMO_BYTES = 100


@dataclass
class StagedOperation:
    kind: str
    body: Dict[str, Any]
    memo: str = ""
    operation_id: Optional[OperationId] = None
    target_endpoints: List[EntityId] = field(default_factory=list)
    max_fee: Optional[int] = None
    valid_duration: int = DEFAULT_VALID_DURATION_S
    frozen: bool = False
    consumed_by: Optional[str] = None

    # ---- Mutation (pre-freeze only) ----

    def _ensure_mutable(self, what: str) -> None:
        if self.frozen:
            raise FrozenOperationError(
                f"cannot set {what}: operation is frozen",
                operation_id=str(self.operation_id) if self.operation_id else None,
            )

    def set_memo(self, memo: str) -> "StagedOperation":
        self._ensure_mutable("memo")
        if len(memo.encode("utf-8")) > MAX_MEMO_BYTES:
            raise ValueError(f"memo exceeds {MAX_MEMO_BYTES} bytes")
        self.memo = memo
        return self

    def set_operation_id(self, op_id: Union[str, OperationId]) -> "StagedOperation":
        self._ensure_mutable("operation id")
        self.operation_id = OperationId.parse(op_id)
        return self

    def set_target_endpoints(self, ids: Sequence[Union[str, EntityId]]) -> "StagedOperation":
        self._ensure_mutable("target endpoints")
        self.target_endpoints = parse_entity_ids(ids)
        return self

    # ---- Lifecycle ----

    def freeze(self, *, operation_id: OperationId, target_endpoints: Sequence[EntityId]) -> "StagedOperation":
        """
        Pin id and endpoints. Values already set on the operation win over the
        ones passed in; calling this on a frozen operation changes nothing.
        """
        if self.frozen:
            return self
        if self.operation_id is None:
            self.operation_id = operation_id
        if not self.target_endpoints:
            self.target_endpoints = list(target_endpoints)
        self.frozen = True
        return self

    def ensure_unconsumed(self, action: str) -> None:
        if self.consumed_by is not None:
            raise OperationConsumedError(
                f"operation {self.kind!r} was already consumed by {self.consumed_by}; cannot {action}"
            )

    def consume(self, action: str) -> None:
        self.ensure_unconsumed(action)
        self.consumed_by = action

    @property
    def payer(self) -> Optional[EntityId]:
        return self.operation_id.payer if self.operation_id else None

    # ---- Serialization ----

    def to_bytes(self) -> bytes:
        from opdispatch.ops.encode import to_bytes

        return to_bytes(self)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "StagedOperation":
        from opdispatch.ops.encode import from_bytes

        return from_bytes(raw)


__all__ = ["StagedOperation", "DEFAULT_VALID_DURATION_S", "MAX_MEMO_BYTES"]
