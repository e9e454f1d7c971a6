"""
opdispatch.builders.schedule
============================

Schedule wrapping and schedule management.

`wrap(inner, options, ...)` stages an outer ``schedule_create`` operation whose
body embeds the inner operation's schedulable view. Wrapping is pure: it makes
no network call and leaves the outer operation unfrozen, with its own memo and
id independent of the inner one. The inner operation is consumed by wrapping.

Body layout of ``schedule_create``::

    {
      "scheduledOperation": {kind, memo, maxFee, data},
      "payerAccountId": "0.0.1234" | None,
      "memo": "<schedule memo>",
      "adminKey": "<der hex>" | {"keyList": [...], "threshold": n} | None,
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from opdispatch.builders.base import OperationBuilder
from opdispatch.keys import Key, encode_key
from opdispatch.ops.encode import schedulable_body_dict
from opdispatch.ops.staged import MAX_MEMO_BYTES, StagedOperation
from opdispatch.types.core import EntityId

SCHEDULE_CREATE = "schedule_create"
SCHEDULE_SIGN = "schedule_sign"
SCHEDULE_DELETE = "schedule_delete"


@dataclass
class ScheduleOptions:
    schedule: bool = False
    memo: Optional[str] = None
    payer_id: Optional[Union[str, EntityId]] = None
    # Raw key input; resolved (current_signer, DER hex, key object) before wrapping
    admin_key: Any = None


def wrap(
    inner: StagedOperation,
    options: ScheduleOptions,
    *,
    payer_id: Optional[EntityId] = None,
    admin_key: Optional[Key] = None,
) -> StagedOperation:
    memo = options.memo or ""
    if len(memo.encode("utf-8")) > MAX_MEMO_BYTES:
        raise ValueError(f"schedule memo exceeds {MAX_MEMO_BYTES} bytes")
    inner.consume("schedule")
    body = {
        "scheduledOperation": schedulable_body_dict(inner),
        "payerAccountId": str(payer_id) if payer_id is not None else None,
        "memo": memo,
        "adminKey": encode_key(admin_key) if admin_key is not None else None,
    }
    return StagedOperation(kind=SCHEDULE_CREATE, body=body)


class ScheduleBuilder(OperationBuilder):
    """Operations on existing schedules. These are never themselves scheduled."""

    def sign_schedule(self, schedule_id: Union[str, EntityId]) -> "ScheduleBuilder":
        self._stage(SCHEDULE_SIGN, {"scheduleId": str(EntityId.parse(schedule_id))})
        return self

    def delete_schedule(self, schedule_id: Union[str, EntityId]) -> "ScheduleBuilder":
        self._stage(SCHEDULE_DELETE, {"scheduleId": str(EntityId.parse(schedule_id))})
        return self


__all__ = [
    "SCHEDULE_CREATE",
    "SCHEDULE_SIGN",
    "SCHEDULE_DELETE",
    "ScheduleOptions",
    "wrap",
    "ScheduleBuilder",
]
