"""
opdispatch.builders.base
========================

`OperationBuilder`: the common staging slot behind every operation family.

A builder is constructed for one logical call. A family-specific method
(`create_topic`, `transfer_native`, ...) stages exactly one operation; the
cross-cutting setters adjust it; then exactly one of `execute`, `get_bytes` or
`execute_with_signer` consumes it.

    builder = ConsensusBuilder(signer, network, session.config)
    builder.submit_message("0.0.42", "hi").set_memo("hello")
    result = await builder.execute()            # ExecuteResult
    # or
    b64 = await builder.get_bytes()             # base64 operation bytes

Execution never raises on submission failure; it returns
``ExecuteResult(success=False, ...)`` with the attempted operation id.
Precondition violations (nothing staged, staged twice, consumed twice,
frozen for another payer) are raised.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Union

from opdispatch.config import SessionConfig
from opdispatch.errors import (
    FrozenOperationError,
    InputValidationError,
    NoSignerAvailableError,
    NoStagedOperationError,
    OpDispatchError,
    OperationAlreadyStagedError,
    PRECONDITION_ERRORS,
)
from opdispatch.keys import KeyResolver
from opdispatch.ops import encode
from opdispatch.ops.staged import StagedOperation
from opdispatch.protocols import NetworkClient, Signer
from opdispatch.types.core import EntityId, ExecuteResult, OperationId

if TYPE_CHECKING:  # pragma: no cover
    from opdispatch.builders.schedule import ScheduleOptions

log = logging.getLogger(__name__)


class OperationBuilder:
    """Single staging slot plus the execute / serialize paths shared by all families."""

    def __init__(
        self,
        signer: Optional[Signer] = None,
        network: Optional[NetworkClient] = None,
        session: Optional[SessionConfig] = None,
    ) -> None:
        self._signer = signer
        self._network = network
        self._session = session or SessionConfig()
        self._staged: Optional[StagedOperation] = None
        self._notes: List[str] = []
        self.keys = KeyResolver(signer)

    # ---- Accessors ----

    @property
    def signer(self) -> Optional[Signer]:
        return self._signer

    @property
    def session(self) -> SessionConfig:
        return self._session

    @property
    def notes(self) -> List[str]:
        return list(self._notes)

    def add_note(self, note: str) -> None:
        self._notes.append(note)

    def get_staged_operation(self) -> Optional[StagedOperation]:
        return self._staged

    def effective_sender_id(self) -> EntityId:
        """The acting-on-behalf-of identity when configured, else the signer's."""
        if self._session.acting_on_behalf_of_id is not None:
            return self._session.acting_on_behalf_of_id
        if self._signer is None:
            raise NoSignerAvailableError("No signer configured and no acting-on-behalf-of identity set.")
        return self._signer.get_identity_id()

    @staticmethod
    def parse_amount(value: Union[int, str, float, Decimal], decimals: int = 0, *, field: str = "amount") -> int:
        """
        Convert a human amount into integer base units: ``parse_amount("1.5", 2) == 150``.
        Fractions finer than `decimals` are rejected rather than rounded.
        """
        if isinstance(value, bool):
            raise InputValidationError(f"{field} must be a number", field=field)
        try:
            d = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise InputValidationError(f"{field} is not a valid number: {value!r}", field=field) from e
        if not d.is_finite():
            raise InputValidationError(f"{field} must be finite", field=field)
        scaled = d.scaleb(int(decimals))
        if scaled != scaled.to_integral_value():
            raise InputValidationError(
                f"{field} {value!r} has more than {decimals} decimal places", field=field
            )
        return int(scaled)

    # ---- Staging ----

    def _stage(self, kind: str, body: Dict[str, Any], *, max_fee: Optional[int] = None) -> StagedOperation:
        if self._staged is not None:
            raise OperationAlreadyStagedError(
                f"builder already holds a staged {self._staged.kind!r} operation; use a new builder"
            )
        op = StagedOperation(kind=kind, body=body, max_fee=max_fee)
        self._staged = op
        log.debug("staged %s operation", kind)
        return op

    def _require_staged(self, action: str) -> StagedOperation:
        if self._staged is None:
            raise NoStagedOperationError(action)
        return self._staged

    # ---- Cross-cutting setters ----

    def set_memo(self, memo: str) -> "OperationBuilder":
        self._require_staged("set memo").set_memo(memo)
        return self

    def set_explicit_id(self, op_id: Union[str, OperationId]) -> "OperationBuilder":
        self._require_staged("set operation id").set_operation_id(op_id)
        return self

    def set_target_endpoints(self, ids: Sequence[Union[str, EntityId]]) -> "OperationBuilder":
        self._require_staged("set target endpoints").set_target_endpoints(ids)
        return self

    # ---- Schedule wrapping ----

    async def _wrap_for_schedule(self, inner: StagedOperation, opts: "ScheduleOptions") -> StagedOperation:
        from opdispatch.builders.schedule import wrap

        payer: Optional[EntityId] = None
        if opts.payer_id:
            payer = EntityId.parse(opts.payer_id)
        elif self._signer is not None:
            payer = self._signer.get_identity_id()
        admin_key = await self.keys.resolve(opts.admin_key)
        return wrap(inner, opts, payer_id=payer, admin_key=admin_key)

    # ---- Consumption ----

    async def _submit(self, op: StagedOperation, signer: Signer, *, scheduled: bool) -> ExecuteResult:
        attempted = str(op.operation_id) if op.operation_id else None
        try:
            if self._network is not None and not op.frozen:
                await self._network.finalize(op, signer.get_identity_id())
                attempted = str(op.operation_id) if op.operation_id else attempted
            receipt = await signer.sign_and_submit(op)
        except PRECONDITION_ERRORS:
            raise
        except Exception as e:  # noqa: BLE001
            log.error("Operation execution failed for %s (%s): %s", op.kind, attempted, e)
            return ExecuteResult.failure(str(e) or "An unknown error occurred during execution.", operation_id=attempted)

        op_id = attempted or receipt.operation_id
        if not receipt.ok:
            log.error("Operation %s finished with status %s", op_id, receipt.status)
            return ExecuteResult.failure(f"Operation failed with status {receipt.status}", operation_id=op_id)

        return ExecuteResult(
            success=True,
            receipt=receipt,
            schedule_id=receipt.schedule_id if scheduled else None,
            operation_id=op_id,
            notes=self.notes,
        )

    async def execute(self, schedule_opts: Optional["ScheduleOptions"] = None) -> ExecuteResult:
        """
        Submit the staged operation with the configured signer, or, with
        ``schedule_opts.schedule``, wrap it in a schedule_create and submit that.
        """
        inner = self._staged
        if inner is None:
            return ExecuteResult.failure("No operation to execute. Call a specific builder method first.")
        if self._signer is None:
            return ExecuteResult.failure("No signer configured; cannot execute.")

        scheduled = bool(schedule_opts and schedule_opts.schedule)
        if scheduled:
            try:
                target = await self._wrap_for_schedule(inner, schedule_opts)
            except PRECONDITION_ERRORS:
                raise
            except Exception as e:  # noqa: BLE001
                log.error("Could not build schedule for %s: %s", inner.kind, e)
                return ExecuteResult.failure(str(e))
            target.consume("execute")
        else:
            inner.consume("execute")
            target = inner
        return await self._submit(target, self._signer, scheduled=scheduled)

    async def get_bytes(self, schedule_opts: Optional["ScheduleOptions"] = None) -> str:
        """
        Freeze the staged (or schedule-wrapped) operation for the effective sender
        and return its base64 bytes. Nothing is submitted.
        """
        inner = self._require_staged("serialize")
        inner.ensure_unconsumed("get_bytes")
        if self._network is None:
            raise OpDispatchError("No network client configured; cannot finalize operation bytes.")

        payer = self.effective_sender_id()
        if schedule_opts and schedule_opts.schedule:
            target = await self._wrap_for_schedule(inner, schedule_opts)
        else:
            target = inner
        # consumed only once the bytes exist
        await self._network.finalize(target, payer)
        target.consume("get_bytes")
        return encode.to_base64_string(target)

    async def execute_with_signer(self, signer: Signer) -> ExecuteResult:
        """
        Submit the unscheduled staged operation with a caller-supplied signer.
        Operations already frozen for a different payer are refused.
        """
        op = self._staged
        if op is None:
            return ExecuteResult.failure("No operation to execute. Call a specific builder method first.")
        signer_id = signer.get_identity_id()
        if op.frozen and op.payer is not None and op.payer != signer_id:
            raise FrozenOperationError(
                "Operation is frozen for a different payer; stage it again and then execute_with_signer.",
                operation_id=str(op.operation_id),
                expected_payer=str(signer_id),
            )
        op.consume("execute_with_signer")
        return await self._submit(op, signer, scheduled=False)


__all__ = ["OperationBuilder"]
