"""
opdispatch.keys
===============

Key types and the Key Resolver.

Caller-supplied key fields arrive in several shapes: absent, a serialized
public key, a serialized private key, a key object, or the symbolic token
``"current_signer"``. Everything funnels through `KeyResolver` so operation
families never re-implement dual-format parsing.

Key encoding
------------
Keys are Ed25519 (via `cryptography`). The canonical string form is the hex
of the DER encoding (SubjectPublicKeyInfo for public keys, PKCS#8 for private
keys). Raw 32-byte hex is accepted on input.

Resolution order for strings is fixed: public key first, then private key.
A 32-byte raw hex string is therefore always read as a public key. Parsing a
private key is accepted but logged, since a public key is nearly always what
the field expects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from opdispatch.errors import InvalidKeyFormatError, NoSignerAvailableError
from opdispatch.protocols import Signer
from opdispatch.utils.bytes import from_hex, to_hex

log = logging.getLogger(__name__)

CURRENT_SIGNER_TOKEN = "current_signer"
_PREVIEW_LEN = 30

# Default key-bearing fields substituted before staging
DEFAULT_KEY_FIELDS: Tuple[str, ...] = (
    "key",
    "admin_key",
    "submit_key",
    "kyc_key",
    "freeze_key",
    "wipe_key",
    "supply_key",
    "fee_schedule_key",
    "pause_key",
)


# --- Key types ---------------------------------------------------------------


class PublicKey:
    """Ed25519 public key."""

    __slots__ = ("_key",)

    def __init__(self, key: ed25519.Ed25519PublicKey) -> None:
        self._key = key

    @classmethod
    def from_bytes(cls, data: bytes) -> "PublicKey":
        if len(data) == 32:
            return cls(ed25519.Ed25519PublicKey.from_public_bytes(data))
        loaded = serialization.load_der_public_key(data)
        if not isinstance(loaded, ed25519.Ed25519PublicKey):
            raise ValueError("DER public key is not Ed25519")
        return cls(loaded)

    @classmethod
    def from_string(cls, s: str) -> "PublicKey":
        return cls.from_bytes(from_hex(s))

    def to_bytes_raw(self) -> bytes:
        return self._key.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)

    def to_bytes_der(self) -> bytes:
        return self._key.public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )

    def to_string_der(self) -> str:
        return to_hex(self.to_bytes_der())

    def verify(self, signature: bytes, message: bytes) -> bool:
        try:
            self._key.verify(signature, message)
            return True
        except InvalidSignature:
            return False

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PublicKey) and self.to_bytes_raw() == other.to_bytes_raw()

    def __hash__(self) -> int:
        return hash(self.to_bytes_raw())

    def __repr__(self) -> str:
        return f"PublicKey({self.to_string_der()[-16:]})"


class PrivateKey:
    """Ed25519 private key. Never serialized into operation bodies."""

    __slots__ = ("_key",)

    def __init__(self, key: ed25519.Ed25519PrivateKey) -> None:
        self._key = key

    @classmethod
    def generate(cls) -> "PrivateKey":
        return cls(ed25519.Ed25519PrivateKey.generate())

    @classmethod
    def from_bytes(cls, data: bytes) -> "PrivateKey":
        if len(data) == 32:
            return cls(ed25519.Ed25519PrivateKey.from_private_bytes(data))
        loaded = serialization.load_der_private_key(data, password=None)
        if not isinstance(loaded, ed25519.Ed25519PrivateKey):
            raise ValueError("DER private key is not Ed25519")
        return cls(loaded)

    @classmethod
    def from_string(cls, s: str) -> "PrivateKey":
        return cls.from_bytes(from_hex(s))

    @property
    def public_key(self) -> PublicKey:
        return PublicKey(self._key.public_key())

    def sign(self, message: bytes) -> bytes:
        return self._key.sign(message)

    def to_string_der(self) -> str:
        return to_hex(
            self._key.private_bytes(
                serialization.Encoding.DER,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            )
        )

    def __repr__(self) -> str:  # never leak key material
        return "PrivateKey(<redacted>)"


@dataclass(frozen=True)
class KeyList:
    """Threshold key: `threshold` of `keys` must sign (all of them when None)."""

    keys: Tuple[PublicKey, ...]
    threshold: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.keys:
            raise ValueError("KeyList needs at least one key")
        if self.threshold is not None and not 1 <= self.threshold <= len(self.keys):
            raise ValueError("KeyList threshold out of range")


Key = Union[PublicKey, KeyList]


def encode_key(key: Key) -> Union[str, Dict[str, Any]]:
    """CBOR/JSON-friendly form of a key for operation bodies."""
    if isinstance(key, PublicKey):
        return key.to_string_der()
    if isinstance(key, KeyList):
        return {
            "keyList": [k.to_string_der() for k in key.keys],
            "threshold": key.threshold if key.threshold is not None else len(key.keys),
        }
    raise TypeError(f"cannot encode key of type {type(key).__name__}")


# --- Key references ----------------------------------------------------------


@dataclass(frozen=True)
class LiteralKey:
    """A caller-supplied key value (string or key object)."""

    value: Any


@dataclass(frozen=True)
class CurrentSigner:
    """Symbolic reference to the active signer's public key."""


KeyRef = Union[LiteralKey, CurrentSigner]


def is_current_signer_token(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() == CURRENT_SIGNER_TOKEN


def parse_key_ref(raw: Any) -> Optional[KeyRef]:
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return None
    if isinstance(raw, (LiteralKey, CurrentSigner)):
        return raw
    if is_current_signer_token(raw):
        return CurrentSigner()
    return LiteralKey(raw)


def _preview(s: str) -> str:
    return s[:_PREVIEW_LEN]


def parse_key_string(s: str) -> PublicKey:
    """
    Parse a serialized key: public first, then private (returning its public half).

    Raises InvalidKeyFormatError when neither parse succeeds.
    """
    try:
        return PublicKey.from_string(s)
    except (ValueError, UnsupportedAlgorithm) as e:
        first_error = e
    log.warning(
        "Attempting to parse key string as a private key to derive its public key. "
        "Supplying private keys for public-facing fields is not recommended. (%s)",
        first_error,
    )
    try:
        return PrivateKey.from_string(s).public_key
    except (ValueError, UnsupportedAlgorithm) as e:
        log.error("Failed to parse key string as public or private key: %s...", _preview(s))
        raise InvalidKeyFormatError(preview=_preview(s), reason=str(e)) from e


class KeyResolver:
    """
    Resolves key fields into concrete keys. The signer is optional; it is
    only needed for the ``current_signer`` token.
    """

    def __init__(self, signer: Optional[Signer] = None) -> None:
        self._signer = signer

    async def resolve(self, key_input: Any) -> Optional[Key]:
        ref = parse_key_ref(key_input)
        if ref is None:
            return None
        if isinstance(ref, CurrentSigner):
            if self._signer is None:
                raise NoSignerAvailableError(
                    f"Signer is not available to resolve {CURRENT_SIGNER_TOKEN!r}."
                )
            log.info("Substituting %r with the signer's public key.", CURRENT_SIGNER_TOKEN)
            return await self._signer.get_public_key()

        value = ref.value
        if isinstance(value, (PublicKey, KeyList)):
            return value
        if isinstance(value, PrivateKey):
            return value.public_key
        if isinstance(value, str):
            return parse_key_string(value.strip())
        log.warning("Received a key value that is neither a key object nor a string: %r", type(value).__name__)
        return None

    async def substitute_key_fields(
        self,
        params: Mapping[str, Any],
        fields: Sequence[str] = DEFAULT_KEY_FIELDS,
    ) -> Dict[str, Any]:
        """
        Return a copy of `params` with every ``current_signer`` key field
        replaced by the signer's DER public key. When the signer cannot supply
        a key the field keeps its token, so staging fails on it later.
        """
        out = dict(params)
        for name in fields:
            if not is_current_signer_token(out.get(name)):
                continue
            if self._signer is None:
                log.error("Cannot substitute %s: no signer configured.", name)
                continue
            try:
                pub = await self._signer.get_public_key()
            except Exception as e:  # noqa: BLE001
                log.error("Failed to get the signer's public key for %s substitution: %s", name, e)
                continue
            out[name] = pub.to_string_der()
            log.info("Substituted %s with current signer's public key.", name)
        return out


__all__ = [
    "CURRENT_SIGNER_TOKEN",
    "DEFAULT_KEY_FIELDS",
    "PublicKey",
    "PrivateKey",
    "KeyList",
    "Key",
    "encode_key",
    "LiteralKey",
    "CurrentSigner",
    "KeyRef",
    "parse_key_ref",
    "is_current_signer_token",
    "parse_key_string",
    "KeyResolver",
]
