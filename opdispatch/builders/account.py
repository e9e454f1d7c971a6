"""
Account operations: native-currency transfers and account creation.

Native amounts are given in whole units (strings, ints or Decimals) and
stored in base units (``NATIVE_DECIMALS`` places).
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from opdispatch.builders.base import OperationBuilder
from opdispatch.errors import InputValidationError
from opdispatch.keys import encode_key
from opdispatch.types.core import EntityId

log = logging.getLogger(__name__)

NATIVE_DECIMALS = 8
DEFAULT_ACCOUNT_AUTO_RENEW_S = 7_776_000

Amount = Union[int, str, Decimal]


class AccountBuilder(OperationBuilder):
    def transfer_native(
        self,
        transfers: Sequence[Tuple[Union[str, EntityId], Amount]],
        *,
        memo: Optional[str] = None,
    ) -> "AccountBuilder":
        """
        Stage a multi-party native transfer. Debits are negative amounts; the
        sum over all entries must be exactly zero in base units.
        """
        if not transfers:
            raise InputValidationError("A native transfer must include at least one transfer.", field="transfers")

        entries = []
        net = 0
        for i, (account, amount) in enumerate(transfers, start=1):
            units = self.parse_amount(amount, NATIVE_DECIMALS, field="amount")
            entries.append({"accountId": str(EntityId.parse(account)), "amount": units})
            net += units
            log.debug("transfer #%d: %s %d", i, account, units)
        if net != 0:
            raise InputValidationError("The sum of all native transfers must be zero.", field="amount")

        op = self._stage("account_transfer", {"transfers": entries})
        if memo:
            op.set_memo(memo)
        return self

    async def create_account(
        self,
        *,
        key: Any = None,
        initial_balance: Amount = 0,
        memo: Optional[str] = None,
        auto_renew_period: Optional[int] = None,
        max_automatic_token_associations: Optional[int] = None,
        receiver_signature_required: bool = False,
    ) -> "AccountBuilder":
        resolved = await self.keys.resolve(key)
        if resolved is None:
            raise InputValidationError("A key is required to create an account.", field="key")

        body: Dict[str, Any] = {
            "key": encode_key(resolved),
            "initialBalance": self.parse_amount(initial_balance, NATIVE_DECIMALS, field="initial_balance"),
            "autoRenewPeriod": int(auto_renew_period or DEFAULT_ACCOUNT_AUTO_RENEW_S),
            "receiverSignatureRequired": bool(receiver_signature_required),
            "accountMemo": memo or "",
        }
        if max_automatic_token_associations is not None:
            body["maxAutomaticTokenAssociations"] = int(max_automatic_token_associations)
        self._stage("account_create", body)
        return self


__all__ = ["AccountBuilder", "NATIVE_DECIMALS", "DEFAULT_ACCOUNT_AUTO_RENEW_S"]
