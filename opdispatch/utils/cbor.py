"""
Deterministic (canonical) CBOR encoder/decoder.

Operation bytes must be byte-for-byte stable: serializing the same frozen
operation twice has to give identical output, and the bytes handed to an
external signer must decode to the same fields on the other side. We use
`cbor2` in canonical mode (RFC 8949 deterministic map ordering, minimal ints).

Supported types
---------------
- None, bool, int, float
- bytes, bytearray, memoryview
- str (UTF-8)
- list/tuple (definite length)
- dict with str keys

API
---
- dumps(obj) -> bytes
- loads(data: bytes|bytearray|memoryview) -> object
- CBOREncodeError / CBORDecodeError
"""

from __future__ import annotations

from typing import Any

import cbor2

from .bytes import BytesLike, ensure_bytes


class CBOREncodeError(ValueError):
    pass


class CBORDecodeError(ValueError):
    pass


def _plain(obj: Any) -> Any:
    if isinstance(obj, (bytearray, memoryview)):
        return bytes(obj)
    if isinstance(obj, tuple):
        return [_plain(v) for v in obj]
    if isinstance(obj, list):
        return [_plain(v) for v in obj]
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if not isinstance(k, str):
                raise CBOREncodeError(f"map keys must be str, got {type(k).__name__}")
            out[k] = _plain(v)
        return out
    return obj


def dumps(obj: Any) -> bytes:
    """Encode *obj* to deterministic CBOR bytes."""
    try:
        return cbor2.dumps(_plain(obj), canonical=True)
    except cbor2.CBOREncodeError as e:
        raise CBOREncodeError(str(e)) from e


def loads(data: BytesLike) -> Any:
    """Decode CBOR *data* (bytes-like) into Python objects."""
    buf = ensure_bytes(data)
    try:
        return cbor2.loads(buf)
    except (cbor2.CBORDecodeError, EOFError) as e:
        raise CBORDecodeError(str(e)) from e


__all__ = ["dumps", "loads", "CBOREncodeError", "CBORDecodeError"]
