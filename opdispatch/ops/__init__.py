"""
opdispatch.ops
==============

Staged operations and their canonical wire encoding.

Submodules
----------
- staged: the `StagedOperation` value (mutation, freezing, single consumption).
- encode: canonical SignBytes and CBOR/base64 (de)serialization.

Typical usage
-------------
    from opdispatch.ops import encode

    raw = encode.to_bytes(op)          # unsigned envelope
    again = encode.from_bytes(raw)     # same memo / id / targets
"""

from __future__ import annotations

from . import encode as encode
from .staged import StagedOperation

__all__ = ["encode", "StagedOperation"]
