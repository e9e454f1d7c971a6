from __future__ import annotations

"""
Core types shared by builders, the dispatcher and the network client.

This module provides two complementary representations for common objects:
- Lightweight `TypedDict` shapes mirroring JSON-RPC payloads.
- Ergonomic `@dataclass` models with parsing helpers and `.to_dict()` views.

Nothing here performs network I/O; these are just types and converters.
"""

import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, TypedDict, Union

_ENTITY_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_OP_ID_RE = re.compile(r"^(\d+\.\d+\.\d+)@(\d+)\.(\d{1,9})(\?scheduled)?$")


# --- Identifiers -------------------------------------------------------------


@dataclass(slots=True, frozen=True, order=True)
class EntityId:
    """`shard.realm.num` identifier for accounts, topics, tokens, schedules and nodes."""

    shard: int
    realm: int
    num: int

    @classmethod
    def parse(cls, value: Union[str, "EntityId"]) -> "EntityId":
        if isinstance(value, EntityId):
            return value
        if not isinstance(value, str):
            raise ValueError(f"entity id must be a string like '0.0.1234', got {type(value).__name__}")
        m = _ENTITY_RE.match(value.strip())
        if not m:
            raise ValueError(f"invalid entity id: {value!r}")
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    def __str__(self) -> str:
        return f"{self.shard}.{self.realm}.{self.num}"


@dataclass(slots=True, frozen=True)
class OperationId:
    """
    Identifier of one operation: the paying identity plus a valid-start timestamp.

    String form: ``0.0.1234@1700000000.000000042`` (``?scheduled`` suffix for
    the inner operation of a schedule).
    """

    payer: EntityId
    valid_start_seconds: int
    valid_start_nanos: int = 0
    scheduled: bool = False

    @classmethod
    def generate(cls, payer: Union[str, EntityId], *, now_ns: Optional[int] = None) -> "OperationId":
        ns = time.time_ns() if now_ns is None else int(now_ns)
        return cls(EntityId.parse(payer), ns // 1_000_000_000, ns % 1_000_000_000)

    @classmethod
    def parse(cls, value: Union[str, "OperationId"]) -> "OperationId":
        if isinstance(value, OperationId):
            return value
        m = _OP_ID_RE.match(str(value).strip())
        if not m:
            raise ValueError(f"invalid operation id: {value!r}")
        nanos = int(m.group(3).ljust(9, "0"))
        return cls(EntityId.parse(m.group(1)), int(m.group(2)), nanos, scheduled=bool(m.group(4)))

    def __str__(self) -> str:
        suffix = "?scheduled" if self.scheduled else ""
        return f"{self.payer}@{self.valid_start_seconds}.{self.valid_start_nanos:09d}{suffix}"


def parse_entity_ids(values: Sequence[Union[str, EntityId]]) -> List[EntityId]:
    return [EntityId.parse(v) for v in values]


# --- JSON-RPC TypedDict shapes ----------------------------------------------


class ReceiptDict(TypedDict, total=False):
    status: str
    operationId: str
    scheduleId: str
    entityId: str
    serials: List[int]


# --- Receipts & results ------------------------------------------------------

SUCCESS_STATUS = "SUCCESS"


@dataclass(slots=True, frozen=True)
class Receipt:
    status: str
    operation_id: Optional[str] = None
    schedule_id: Optional[str] = None
    entity_id: Optional[str] = None
    serials: Sequence[int] = ()
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS_STATUS

    def to_dict(self) -> ReceiptDict:
        d: ReceiptDict = {"status": self.status}
        if self.operation_id is not None:
            d["operationId"] = self.operation_id
        if self.schedule_id is not None:
            d["scheduleId"] = self.schedule_id
        if self.entity_id is not None:
            d["entityId"] = self.entity_id
        if self.serials:
            d["serials"] = list(self.serials)
        return d

    @staticmethod
    def from_rpc_dict(d: Dict[str, Any]) -> "Receipt":
        return Receipt(
            status=str(d.get("status", "UNKNOWN")),
            operation_id=d.get("operationId"),
            schedule_id=d.get("scheduleId"),
            entity_id=d.get("entityId"),
            serials=tuple(int(s) for s in d.get("serials", ())),
            raw=dict(d),
        )


@dataclass(slots=True)
class ExecuteResult:
    """
    Outcome of one execution attempt.

    ``success=True`` carries a receipt or a schedule id; ``success=False``
    carries an error message (and the attempted operation id when known).
    """

    success: bool
    receipt: Optional[Receipt] = None
    schedule_id: Optional[str] = None
    error: Optional[str] = None
    operation_id: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.success and self.receipt is None and self.schedule_id is None:
            raise ValueError("successful ExecuteResult needs a receipt or a schedule id")
        if not self.success and not self.error:
            raise ValueError("failed ExecuteResult needs an error message")

    @classmethod
    def failure(cls, error: str, *, operation_id: Optional[str] = None) -> "ExecuteResult":
        return cls(success=False, error=error or "unknown error", operation_id=operation_id)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"success": self.success}
        if self.receipt is not None:
            d["receipt"] = self.receipt.to_dict()
        if self.schedule_id is not None:
            d["scheduleId"] = self.schedule_id
        if self.operation_id is not None:
            d["operationId"] = self.operation_id
        if self.error is not None:
            d["error"] = self.error
        if self.notes:
            d["notes"] = list(self.notes)
        return d


__all__ = [
    "EntityId",
    "OperationId",
    "parse_entity_ids",
    "ReceiptDict",
    "Receipt",
    "ExecuteResult",
    "SUCCESS_STATUS",
]
