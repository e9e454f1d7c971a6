"""
Configuration: session policy (operational mode, default scheduling, acting
identity) and network client settings (RPC endpoint, retries, node list).

- Loads sane defaults and supports overrides via environment variables (OPDISPATCH_*).
- Config objects are immutable. A running process changes policy only through
  `Session.replace(...)`, which swaps the whole snapshot under a lock so an
  in-flight dispatch never sees a half-updated configuration.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .types.core import EntityId
from .version import user_agent

log = logging.getLogger(__name__)

_DEFAULT_RPC = "http://127.0.0.1:50211/rpc"
_DEFAULT_NODES = ("0.0.3",)
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class OperationalMode(str, Enum):
    DIRECT_EXECUTION = "directExecution"
    PROVIDE_BYTES = "provideBytes"

    @classmethod
    def parse(cls, value: Any) -> "OperationalMode":
        if isinstance(value, OperationalMode):
            return value
        s = str(value).strip()
        aliases = {
            "direct": cls.DIRECT_EXECUTION,
            "direct_execution": cls.DIRECT_EXECUTION,
            "directexecution": cls.DIRECT_EXECUTION,
            "bytes": cls.PROVIDE_BYTES,
            "provide_bytes": cls.PROVIDE_BYTES,
            "providebytes": cls.PROVIDE_BYTES,
        }
        mode = aliases.get(s.lower())
        if mode is None:
            raise ValueError(f"unknown operational mode: {value!r}")
        return mode


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _parse_bool(val: Any, default: bool = False) -> bool:
    if val is None:
        return default
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValueError(f"expected a boolean, got {val!r}")


def _parse_entity(val: Optional[str]) -> Optional[EntityId]:
    if val is None or str(val).strip() == "":
        return None
    return EntityId.parse(str(val))


def _ensure_scheme(url: Optional[str], allowed: Tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


# -----------------------------------------------------------------------------
# Session policy
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class SessionConfig:
    mode: OperationalMode = OperationalMode.DIRECT_EXECUTION
    # In bytes mode, wrap user operations in a schedule unless the call says otherwise
    schedule_by_default_in_bytes_mode: bool = False
    # The "user" identity, distinct from the operating credential that signs/pays
    acting_on_behalf_of_id: Optional[EntityId] = None

    @classmethod
    def from_env(cls, prefix: str = "OPDISPATCH_") -> "SessionConfig":
        """
        Create config from environment variables:

        OPDISPATCH_MODE               (directExecution | provideBytes)
        OPDISPATCH_SCHEDULE_IN_BYTES  (bool)
        OPDISPATCH_ACTING_ID          (shard.realm.num) optional
        """
        return cls(
            mode=OperationalMode.parse(_env(f"{prefix}MODE", OperationalMode.DIRECT_EXECUTION.value)),
            schedule_by_default_in_bytes_mode=_parse_bool(_env(f"{prefix}SCHEDULE_IN_BYTES"), False),
            acting_on_behalf_of_id=_parse_entity(_env(f"{prefix}ACTING_ID")),
        )

    @classmethod
    def with_overrides(cls, base: Optional["SessionConfig"] = None, **overrides: Any) -> "SessionConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys are ignored.
        """
        base = base or cls.from_env()
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in overrides.items() if k in known}
        if "mode" in data:
            data["mode"] = OperationalMode.parse(data["mode"])
        if "schedule_by_default_in_bytes_mode" in data:
            data["schedule_by_default_in_bytes_mode"] = _parse_bool(data["schedule_by_default_in_bytes_mode"])
        if "acting_on_behalf_of_id" in data and not isinstance(data["acting_on_behalf_of_id"], EntityId):
            data["acting_on_behalf_of_id"] = _parse_entity(data["acting_on_behalf_of_id"])
        return replace(base, **data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "schedule_by_default_in_bytes_mode": self.schedule_by_default_in_bytes_mode,
            "acting_on_behalf_of_id": str(self.acting_on_behalf_of_id) if self.acting_on_behalf_of_id else None,
        }


class Session:
    """
    Holder for the current `SessionConfig`. Reads return an immutable snapshot;
    `replace` is the single administrative entry point for changing policy.
    """

    def __init__(self, config: Optional[SessionConfig] = None) -> None:
        self._config = config or SessionConfig()
        self._lock = threading.Lock()

    @property
    def config(self) -> SessionConfig:
        with self._lock:
            return self._config

    def replace(self, **changes: Any) -> SessionConfig:
        with self._lock:
            new = SessionConfig.with_overrides(self._config, **changes)
            if new != self._config:
                log.info("session: config changed %s -> %s", self._config.to_dict(), new.to_dict())
            self._config = new
            return new

    def set_operational_mode(self, mode: Any) -> SessionConfig:
        return self.replace(mode=mode)


# -----------------------------------------------------------------------------
# Network client settings
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class NetworkConfig:
    rpc_url: str = _DEFAULT_RPC
    # Endpoints operations are pinned to when the caller did not choose any
    default_nodes: Tuple[EntityId, ...] = field(
        default_factory=lambda: tuple(EntityId.parse(n) for n in _DEFAULT_NODES)
    )
    valid_duration_s: int = 120
    request_timeout: float = 10.0
    max_retries: int = 3
    backoff_factor: float = 0.25
    receipt_timeout: float = 60.0
    receipt_poll_interval: float = 0.5
    user_agent: str = field(default_factory=user_agent)

    @classmethod
    def from_env(cls, prefix: str = "OPDISPATCH_") -> "NetworkConfig":
        """
        Create config from environment variables:

        OPDISPATCH_RPC_URL          (http/https)
        OPDISPATCH_NODES            (comma separated shard.realm.num)
        OPDISPATCH_VALID_DURATION   (int seconds)
        OPDISPATCH_TIMEOUT          (float seconds, HTTP)
        OPDISPATCH_MAX_RETRIES      (int)
        OPDISPATCH_BACKOFF          (float)
        OPDISPATCH_RECEIPT_TIMEOUT  (float seconds)
        """
        rpc = _env(f"{prefix}RPC_URL", _DEFAULT_RPC)
        _ensure_scheme(rpc, ("http", "https"))
        nodes_raw = _env(f"{prefix}NODES", ",".join(_DEFAULT_NODES)) or ""
        nodes = tuple(EntityId.parse(n) for n in nodes_raw.split(",") if n.strip())
        return cls(
            rpc_url=rpc or _DEFAULT_RPC,
            default_nodes=nodes,
            valid_duration_s=int(_env(f"{prefix}VALID_DURATION", "120")),
            request_timeout=float(_env(f"{prefix}TIMEOUT", "10.0")),
            max_retries=int(_env(f"{prefix}MAX_RETRIES", "3")),
            backoff_factor=float(_env(f"{prefix}BACKOFF", "0.25")),
            receipt_timeout=float(_env(f"{prefix}RECEIPT_TIMEOUT", "60.0")),
        )

    def http_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }


__all__ = [
    "OperationalMode",
    "SessionConfig",
    "Session",
    "NetworkConfig",
]
