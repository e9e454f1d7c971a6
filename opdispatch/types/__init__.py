"""
opdispatch.types
================

Identifiers, receipts and execution results shared across the package.

    from opdispatch.types import EntityId, OperationId, ExecuteResult
"""

from __future__ import annotations

from . import core as core
from .core import (SUCCESS_STATUS, EntityId, ExecuteResult, OperationId,
                   Receipt, ReceiptDict, parse_entity_ids)

__all__ = [
    "core",
    "EntityId",
    "OperationId",
    "parse_entity_ids",
    "Receipt",
    "ReceiptDict",
    "ExecuteResult",
    "SUCCESS_STATUS",
]
