"""
Shared pieces for operation tools: the params base model, a builder-backed
tool base, and validation of JSON batch strings (``transfersJson``,
``recipientsJson``).
"""

from __future__ import annotations

import json
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Type

from pydantic import BaseModel, ConfigDict

from opdispatch.builders.base import OperationBuilder
from opdispatch.config import SessionConfig
from opdispatch.dispatch import OperationTool
from opdispatch.errors import InputValidationError
from opdispatch.protocols import NetworkClient, Signer
from opdispatch.types.core import EntityId


class ToolParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


class BuilderTool(OperationTool):
    """A tool whose builder is a plain `builder_class(signer, network, session)`."""

    builder_class: ClassVar[Type[OperationBuilder]]

    def create_builder(
        self,
        signer: Optional[Signer],
        network: Optional[NetworkClient],
        session: SessionConfig,
    ) -> OperationBuilder:
        return self.builder_class(signer, network, session)


def parse_json_array(raw: str, *, field: str, what: str) -> List[Any]:
    """Decode a JSON string that must hold a non-empty array."""
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputValidationError(f"Invalid {field} format for {what}: {e.msg}", field=field) from e
    if not isinstance(items, list) or not items:
        raise InputValidationError(
            f"Invalid {field} format for {what}: parsed value is not a non-empty array.", field=field
        )
    return items


def require_item(item: Any, number: int, *, what: str, required: Sequence[str]) -> Dict[str, Any]:
    """Check one batch entry; `number` is 1-based."""
    if not isinstance(item, dict):
        raise InputValidationError(f"{what} item #{number} must be an object.", index=number)
    missing = [f for f in required if item.get(f) is None]
    if missing:
        raise InputValidationError(
            f"{what} item #{number} is missing required fields: {', '.join(required)}.",
            field=missing[0],
            index=number,
        )
    return item


def require_account_id(item: Dict[str, Any], number: int, *, what: str) -> str:
    value = item["accountId"]
    if not isinstance(value, str):
        raise InputValidationError(f"{what} #{number} accountId must be a string.", field="accountId", index=number)
    try:
        EntityId.parse(value)
    except ValueError as e:
        raise InputValidationError(
            f"{what} #{number} has an invalid accountId: {value!r}.", field="accountId", index=number
        ) from e
    return value


def require_number(
    item: Dict[str, Any], number: int, *, what: str, decimals: int = 0, allow_str: bool = False
) -> Any:
    """Check the item's amount is a number that converts to base units at `decimals`."""
    value = item["amount"]
    ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    if allow_str and isinstance(value, str):
        ok = True
    if not ok:
        kind = "a number or numeric string" if allow_str else "a number"
        raise InputValidationError(f"{what} #{number} amount must be {kind}.", field="amount", index=number)
    # floats go through str() so 0.1 stays 0.1 when converted to base units
    value = str(value) if isinstance(value, float) else value
    try:
        OperationBuilder.parse_amount(value, decimals)
    except InputValidationError as e:
        raise InputValidationError(f"{what} #{number}: {e.message}", field="amount", index=number) from e
    return value


__all__ = [
    "ToolParams",
    "BuilderTool",
    "parse_json_array",
    "require_item",
    "require_account_id",
    "require_number",
]
