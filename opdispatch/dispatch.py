"""
opdispatch.dispatch
===================

Operational-mode dispatcher.

An `OperationTool` knows how to validate one kind of caller input and stage
it on a fresh builder. The `Dispatcher` runs the rest of the pipeline:

    args -> MetaOptions + params model -> current_signer substitution
         -> tool.stage(builder, params) -> memo / explicit id / targets
         -> {direct execution | operation bytes | schedule_create}

Scheduling decision, highest priority first:

1. tools marked ``never_schedule`` are never wrapped;
2. DIRECT_EXECUTION honours only an explicit per-call ``schedule`` (default off);
3. PROVIDE_BYTES uses the per-call ``schedule`` when given, else the session's
   ``schedule_by_default_in_bytes_mode``.

`dispatch()` returns plain dicts and never raises for expected failures:
validation, key resolution, staging and submission errors all come back as
``{"success": False, "error": ...}``. Builder misuse (precondition errors)
still raises.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from opdispatch.builders.base import OperationBuilder
from opdispatch.builders.schedule import ScheduleOptions
from opdispatch.config import OperationalMode, Session, SessionConfig
from opdispatch.errors import PRECONDITION_ERRORS, OpDispatchError
from opdispatch.keys import KeyResolver
from opdispatch.protocols import NetworkClient, Signer

log = logging.getLogger(__name__)

META_KEYS = ("metaOptions", "meta_options")


# -----------------------------------------------------------------------------
# Per-call options
# -----------------------------------------------------------------------------


class MetaOptions(BaseModel):
    """
    Cross-cutting per-call options. Every field is optional; camelCase and
    snake_case keys are both accepted.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    memo: Optional[str] = Field(default=None, alias="memo")
    explicit_id: Optional[str] = Field(default=None, alias="explicitId")
    target_endpoints: Optional[List[str]] = Field(default=None, alias="targetEndpoints")
    schedule: Optional[bool] = Field(default=None, alias="schedule")
    schedule_memo: Optional[str] = Field(default=None, alias="scheduleMemo")
    schedule_payer_id: Optional[str] = Field(default=None, alias="schedulePayerId")
    schedule_admin_key: Optional[str] = Field(default=None, alias="scheduleAdminKey")

    def schedule_options(self, *, payer_id: Any = None) -> ScheduleOptions:
        return ScheduleOptions(
            schedule=True,
            memo=self.schedule_memo,
            payer_id=self.schedule_payer_id or payer_id,
            admin_key=self.schedule_admin_key,
        )


# -----------------------------------------------------------------------------
# Tool capability
# -----------------------------------------------------------------------------


class OperationTool(abc.ABC):
    """
    One operation kind exposed to callers.

    Subclasses set `name`, `description`, `params_model` and, where the params
    carry keys, `key_fields` (python field names). `never_schedule` marks
    operations that must always run unwrapped (e.g. schedule management).
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    params_model: ClassVar[Type[BaseModel]]
    never_schedule: ClassVar[bool] = False
    key_fields: ClassVar[Tuple[str, ...]] = ()

    @abc.abstractmethod
    def create_builder(
        self,
        signer: Optional[Signer],
        network: Optional[NetworkClient],
        session: SessionConfig,
    ) -> OperationBuilder: ...

    @abc.abstractmethod
    async def stage(self, builder: OperationBuilder, params: BaseModel) -> None: ...

    def key_field_names(self) -> Tuple[str, ...]:
        """Key fields under both their python names and their aliases."""
        names: List[str] = []
        fields = self.params_model.model_fields
        for f in self.key_fields:
            names.append(f)
            info = fields.get(f)
            if info is not None and info.alias and info.alias != f:
                names.append(info.alias)
        return tuple(names)


def _validation_message(tool_name: str, e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "input"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return f"Invalid parameters for {tool_name}: " + "; ".join(parts)


# -----------------------------------------------------------------------------
# Dispatcher
# -----------------------------------------------------------------------------


class Dispatcher:
    def __init__(
        self,
        signer: Optional[Signer] = None,
        network: Optional[NetworkClient] = None,
        session: Optional[Session] = None,
    ) -> None:
        self.signer = signer
        self.network = network
        self.session = session or Session()

    @staticmethod
    def should_schedule(tool: OperationTool, meta: MetaOptions, config: SessionConfig) -> bool:
        if tool.never_schedule:
            return False
        if config.mode is OperationalMode.DIRECT_EXECUTION:
            return bool(meta.schedule)
        if meta.schedule is not None:
            return meta.schedule
        return config.schedule_by_default_in_bytes_mode

    async def dispatch(self, tool: OperationTool, args: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        config = self.session.config
        params_in = dict(args or {})
        raw_meta: Any = None
        for k in META_KEYS:
            if k in params_in:
                raw_meta = params_in.pop(k)

        log.info("Dispatching %s (mode=%s)", tool.name, config.mode.value)
        try:
            meta = MetaOptions.model_validate(raw_meta or {})
            resolver = KeyResolver(self.signer)
            params_in = await resolver.substitute_key_fields(params_in, tool.key_field_names())
            params = tool.params_model.model_validate(params_in)

            builder = tool.create_builder(self.signer, self.network, config)
            await tool.stage(builder, params)
            self._apply_meta(builder, meta)

            if self.should_schedule(tool, meta, config):
                return await self._run_scheduled(tool, builder, meta, config)
            if config.mode is OperationalMode.PROVIDE_BYTES:
                return await self._run_bytes(tool, builder)
            log.info("Executing operation directly (mode: directExecution): %s", tool.name)
            result = await builder.execute()
            return result.to_dict()
        except PRECONDITION_ERRORS:
            raise
        except ValidationError as e:
            msg = _validation_message(tool.name, e)
            log.error("Error in %s: %s", tool.name, msg)
            return {"success": False, "error": msg}
        except (OpDispatchError, ValueError, TypeError) as e:
            log.error("Error in %s: %s", tool.name, e)
            return {"success": False, "error": str(e) or type(e).__name__}
        except Exception as e:  # noqa: BLE001
            log.exception("Unexpected error in %s", tool.name)
            return {"success": False, "error": str(e) or "An unexpected error occurred."}

    # ---- internals ----

    def _apply_meta(self, builder: OperationBuilder, meta: MetaOptions) -> None:
        if meta.explicit_id:
            try:
                builder.set_explicit_id(meta.explicit_id)
            except ValueError:
                log.warning("Invalid explicitId format in meta options: %s, ignoring.", meta.explicit_id)
        if meta.target_endpoints:
            try:
                builder.set_target_endpoints(meta.target_endpoints)
            except ValueError:
                log.warning("Invalid target endpoint format in meta options, ignoring.")
        if meta.memo:
            builder.set_memo(meta.memo)

    async def _run_scheduled(
        self,
        tool: OperationTool,
        builder: OperationBuilder,
        meta: MetaOptions,
        config: SessionConfig,
    ) -> Dict[str, Any]:
        log.info("Preparing scheduled operation (mode: %s, schedule: true): %s", config.mode.value, tool.name)
        operator = self.signer.get_identity_id() if self.signer is not None else None
        result = await builder.execute(meta.schedule_options(payer_id=operator))
        if not (result.success and result.schedule_id):
            return {"success": False, "error": result.error or "Failed to create schedule and retrieve ID."}

        acting = config.acting_on_behalf_of_id
        description = meta.memo or f"Scheduled {tool.name} operation."
        if acting is not None:
            description += f" User ({acting}) will be payer of scheduled operation."
        out: Dict[str, Any] = {
            "success": True,
            "op": "schedule_create",
            "schedule_id": result.schedule_id,
            "description": description,
            "payer_account_id_scheduled_op": str(acting) if acting is not None else "unknown",
            "memo_scheduled_op": meta.memo,
        }
        if result.notes:
            out["notes"] = list(result.notes)
        return out

    async def _run_bytes(self, tool: OperationTool, builder: OperationBuilder) -> Dict[str, Any]:
        log.info("Returning operation bytes (mode: provideBytes, schedule: false): %s", tool.name)
        b64 = await builder.get_bytes()
        op = builder.get_staged_operation()
        out: Dict[str, Any] = {
            "success": True,
            "operationBytes": b64,
            "operationId": str(op.operation_id) if op is not None and op.operation_id else None,
        }
        if builder.notes:
            out["notes"] = builder.notes
        return out


__all__ = ["MetaOptions", "OperationTool", "Dispatcher"]
