"""
Typed error classes for opdispatch.

Precondition errors (`NoStagedOperationError`, `OperationAlreadyStagedError`,
`OperationConsumedError`, `FrozenOperationError`) signal misuse of the builder
API and are always raised. Everything else is an expected failure mode that
the dispatcher converts into a `{"success": False, "error": ...}` result, so
callers can still catch the base `OpDispatchError` when driving builders by
hand.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional

__all__ = [
    "OpDispatchError",
    "NoStagedOperationError",
    "OperationAlreadyStagedError",
    "OperationConsumedError",
    "FrozenOperationError",
    "InvalidKeyFormatError",
    "InputValidationError",
    "NoSignerAvailableError",
    "PRECONDITION_ERRORS",
    "SubmissionError",
    "RpcError",
    "JsonRpcCode",
    "from_jsonrpc_error",
]


class OpDispatchError(Exception):
    """Base class for all opdispatch errors."""


# --- Precondition errors -----------------------------------------------------


class NoStagedOperationError(OpDispatchError):
    """A cross-cutting setter or serializer was called before any operation was staged."""

    def __init__(self, action: str = "modify") -> None:
        self.action = action
        super().__init__(
            f"No operation is currently staged; cannot {action}. "
            "Call a specific builder method first (e.g. create_topic)."
        )


class OperationAlreadyStagedError(OpDispatchError):
    """A builder already holds a live operation; builders are single-use."""


class OperationConsumedError(OpDispatchError):
    """The staged operation was already executed, serialized or wrapped."""


@dataclass(slots=True)
class FrozenOperationError(OpDispatchError):
    """
    Raised when an operation is frozen and cannot be changed, or when it was
    frozen for a payer other than the signer now asked to submit it.
    """

    message: str
    operation_id: Optional[str] = None
    expected_payer: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        bits = [self.message]
        if self.operation_id:
            bits.append(f"op={self.operation_id}")
        if self.expected_payer:
            bits.append(f"signer={self.expected_payer}")
        return " ".join(bits)


# --- Validation / resolution errors ------------------------------------------


@dataclass(slots=True)
class InvalidKeyFormatError(OpDispatchError):
    """A non-empty key string parsed neither as a public nor as a private key."""

    preview: str
    reason: Optional[str] = None

    def __str__(self) -> str:
        return f"Invalid key string format: {self.preview}..."


@dataclass(slots=True)
class InputValidationError(OpDispatchError):
    """
    Caller-supplied input (structured text, params) failed validation before staging.

    Fields:
      - message: human-readable description
      - field: offending field name, if known
      - index: 1-based item number inside a batch, if applicable
    """

    message: str
    field: Optional[str] = None
    index: Optional[int] = None

    def __str__(self) -> str:
        return self.message


class NoSignerAvailableError(OpDispatchError):
    """The 'current_signer' token was used but no signer is configured."""


# Misuse of the builder API; never converted into a result
PRECONDITION_ERRORS = (
    NoStagedOperationError,
    OperationAlreadyStagedError,
    OperationConsumedError,
    FrozenOperationError,
)


# --- Submission errors -------------------------------------------------------


@dataclass(slots=True)
class SubmissionError(OpDispatchError):
    """
    Raised when a submitted operation fails (node rejection, bad signature,
    receipt with a failure status).

    Fields:
      - message: human-readable description
      - operation_id: id of the attempted operation if known
      - status: receipt status code string, if a receipt was obtained
    """

    message: str
    operation_id: Optional[str] = None
    status: Optional[str] = None

    def __str__(self) -> str:
        return self.message


class JsonRpcCode(IntEnum):
    # JSON-RPC 2.0 reserved codes
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (implementation-defined range: -32099 to -32000)
    SERVER_ERROR = -32000
    TRANSPORT_ERROR = -32098

    # Common custom extensions
    RATE_LIMITED = -32001
    UNAUTHORIZED = -32002
    OP_REJECTED = -32011


@dataclass(slots=True)
class RpcError(OpDispatchError):
    """Raised when a JSON-RPC call returns an error object or the transport fails."""

    code: int
    message: str
    method: Optional[str] = None
    data: Optional[Any] = None
    http_status: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"RPC[{self.method or '-'}] code={self.code} msg={self.message!r}"]
        if self.http_status is not None:
            parts.append(f"http={self.http_status}")
        if self.data is not None:
            parts.append(f"data={self.data!r}")
        return " ".join(parts)


def from_jsonrpc_error(
    err_obj: Dict[str, Any],
    *,
    method: Optional[str] = None,
    http_status: Optional[int] = None,
) -> RpcError:
    """
    Convert a JSON-RPC error object into RpcError.

    `err_obj` should resemble: {"code": int, "message": str, "data": any?}
    """
    return RpcError(
        code=int(err_obj.get("code", JsonRpcCode.SERVER_ERROR)),
        message=str(err_obj.get("message", "Unknown JSON-RPC error")),
        method=method,
        data=err_obj.get("data"),
        http_status=http_status,
    )
