"""
opdispatch.tools
================

Operation tools: one class per operation kind, each pairing a pydantic params
model with a builder call. Look tools up by name with `get_tool`.

    from opdispatch.tools import get_tool

    result = await dispatcher.dispatch(get_tool("consensus-create-topic"), {"memo": "ops"})
"""

from __future__ import annotations

from typing import Dict, Tuple, Type

from opdispatch.dispatch import OperationTool

from .account import CreateAccountTool, TransferNativeTool
from .consensus import CreateTopicTool, DeleteTopicTool, SubmitMessageTool
from .schedule import DeleteScheduleTool, SignScheduleTool
from .token import AirdropTokenTool, CreateFungibleTokenTool, MintFungibleTokenTool

ALL_TOOLS: Tuple[Type[OperationTool], ...] = (
    TransferNativeTool,
    CreateAccountTool,
    CreateTopicTool,
    SubmitMessageTool,
    DeleteTopicTool,
    CreateFungibleTokenTool,
    MintFungibleTokenTool,
    AirdropTokenTool,
    SignScheduleTool,
    DeleteScheduleTool,
)

_REGISTRY: Dict[str, Type[OperationTool]] = {cls.name: cls for cls in ALL_TOOLS}


def tool_names() -> Tuple[str, ...]:
    return tuple(_REGISTRY)


def get_tool(name: str) -> OperationTool:
    try:
        return _REGISTRY[name]()
    except KeyError:
        raise KeyError(f"unknown tool {name!r}; known tools: {', '.join(sorted(_REGISTRY))}") from None


__all__ = [
    "ALL_TOOLS",
    "get_tool",
    "tool_names",
    "TransferNativeTool",
    "CreateAccountTool",
    "CreateTopicTool",
    "SubmitMessageTool",
    "DeleteTopicTool",
    "CreateFungibleTokenTool",
    "MintFungibleTokenTool",
    "AirdropTokenTool",
    "SignScheduleTool",
    "DeleteScheduleTool",
]
