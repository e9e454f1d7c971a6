"""
opdispatch: build, schedule and dispatch network operations.
Convenience exports for the most common APIs.
"""

from .version import __version__  # noqa: F401

# Config & errors
from .config import NetworkConfig, OperationalMode, Session, SessionConfig  # noqa: F401
from .errors import (  # noqa: F401
    FrozenOperationError,
    InputValidationError,
    InvalidKeyFormatError,
    NoSignerAvailableError,
    NoStagedOperationError,
    OpDispatchError,
    OperationAlreadyStagedError,
    OperationConsumedError,
    RpcError,
    SubmissionError,
)

# Types
from .types import EntityId, ExecuteResult, OperationId, Receipt  # noqa: F401
from .ops import StagedOperation  # noqa: F401

# Keys
from .keys import KeyList, KeyResolver, PrivateKey, PublicKey  # noqa: F401

# Builders & dispatch
from .builders import (  # noqa: F401
    AccountBuilder,
    ConsensusBuilder,
    OperationBuilder,
    ScheduleBuilder,
    ScheduleOptions,
    TokenBuilder,
)
from .dispatch import Dispatcher, MetaOptions, OperationTool  # noqa: F401
from .tools import get_tool  # noqa: F401

# Reference collaborators
from .rpc import AsyncRpcClient, RpcNetworkClient  # noqa: F401
from .wallet import LocalSigner  # noqa: F401

__all__ = [
    "__version__",
    # Config
    "NetworkConfig", "OperationalMode", "Session", "SessionConfig",
    # Errors
    "OpDispatchError", "NoStagedOperationError", "OperationAlreadyStagedError",
    "OperationConsumedError", "FrozenOperationError", "InvalidKeyFormatError",
    "InputValidationError", "NoSignerAvailableError", "SubmissionError", "RpcError",
    # Types
    "EntityId", "OperationId", "Receipt", "ExecuteResult", "StagedOperation",
    # Keys
    "PublicKey", "PrivateKey", "KeyList", "KeyResolver",
    # Builders & dispatch
    "OperationBuilder", "AccountBuilder", "ConsensusBuilder", "TokenBuilder",
    "ScheduleBuilder", "ScheduleOptions",
    "Dispatcher", "MetaOptions", "OperationTool", "get_tool",
    # Collaborators
    "AsyncRpcClient", "RpcNetworkClient", "LocalSigner",
]
