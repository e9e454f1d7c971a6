"""
opdispatch.wallet
=================

Reference signing credential.

    from opdispatch.wallet import LocalSigner
    signer = LocalSigner("0.0.1001", "<der hex private key>", network)
"""

from .signer import LocalSigner

__all__ = ["LocalSigner"]
