"""
Fungible token operations: create, mint, airdrop.

Defaults applied here are recorded as builder notes so that callers see them
in the dispatch result:

- token symbol derived from the token name when omitted;
- treasury defaulted to the acting-on-behalf-of account in bytes mode, else
  to the operating account;
- auto-renew period applied when an auto-renew account is given alone.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from opdispatch.builders.base import OperationBuilder
from opdispatch.config import OperationalMode
from opdispatch.errors import InputValidationError
from opdispatch.keys import encode_key
from opdispatch.types.core import EntityId

log = logging.getLogger(__name__)

DEFAULT_TOKEN_AUTO_RENEW_S = 7_776_000
SUPPLY_TYPES = ("infinite", "finite")

_KEY_FIELDS = (
    ("admin_key", "adminKey"),
    ("kyc_key", "kycKey"),
    ("freeze_key", "freezeKey"),
    ("wipe_key", "wipeKey"),
    ("supply_key", "supplyKey"),
    ("fee_schedule_key", "feeScheduleKey"),
    ("pause_key", "pauseKey"),
)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def default_symbol(token_name: str) -> str:
    """First five alphanumerics of the name, upper-cased; "TOKEN" if nothing is left."""
    if not token_name:
        return "TOKEN"
    return _NON_ALNUM.sub("", token_name)[:5].upper() or "TOKEN"


class TokenBuilder(OperationBuilder):
    async def create_fungible_token(
        self,
        *,
        token_name: str,
        token_symbol: Optional[str] = None,
        treasury_account_id: Optional[Union[str, EntityId]] = None,
        initial_supply: Union[int, str, Decimal] = 0,
        decimals: int = 0,
        supply_type: str = "infinite",
        max_supply: Optional[Union[int, str, Decimal]] = None,
        memo: Optional[str] = None,
        auto_renew_account_id: Optional[Union[str, EntityId]] = None,
        auto_renew_period: Optional[int] = None,
        **keys: Any,
    ) -> "TokenBuilder":
        unknown = set(keys) - {name for name, _ in _KEY_FIELDS}
        if unknown:
            raise TypeError(f"unexpected key fields: {sorted(unknown)}")
        if supply_type not in SUPPLY_TYPES:
            raise InputValidationError(f"supply_type must be one of {SUPPLY_TYPES}", field="supply_type")

        treasury = self._default_treasury(treasury_account_id)

        symbol = token_symbol
        if not symbol:
            symbol = default_symbol(token_name)
            self.add_note(f"Token symbol defaulted to '{symbol}' based on token name.")

        body: Dict[str, Any] = {
            "tokenName": token_name,
            "tokenSymbol": symbol,
            "treasuryAccountId": str(treasury),
            "tokenType": "fungible_common",
            "supplyType": supply_type,
            "initialSupply": self.parse_amount(initial_supply, 0, field="initial_supply"),
            "decimals": int(decimals),
            "tokenMemo": memo or "",
        }
        if supply_type == "finite" and max_supply is not None:
            body["maxSupply"] = self.parse_amount(max_supply, 0, field="max_supply")

        for name, wire in _KEY_FIELDS:
            resolved = await self.keys.resolve(keys.get(name))
            if resolved is not None:
                body[wire] = encode_key(resolved)

        if auto_renew_account_id:
            body["autoRenewAccountId"] = str(EntityId.parse(auto_renew_account_id))
        if auto_renew_period:
            body["autoRenewPeriod"] = int(auto_renew_period)
        elif auto_renew_account_id:
            body["autoRenewPeriod"] = DEFAULT_TOKEN_AUTO_RENEW_S
            self.add_note(
                f"Default auto-renew period of {DEFAULT_TOKEN_AUTO_RENEW_S} seconds applied for fungible token."
            )

        self._stage("token_create", body)
        return self

    def _default_treasury(self, explicit: Optional[Union[str, EntityId]]) -> EntityId:
        if explicit:
            return EntityId.parse(explicit)
        acting = self.session.acting_on_behalf_of_id
        if acting is not None and self.session.mode is OperationalMode.PROVIDE_BYTES:
            log.info("Using acting account %s as treasury for token creation in bytes mode.", acting)
            self.add_note(f"Treasury account defaulted to your account ({acting}).")
            return acting
        if self.signer is not None:
            operator = self.signer.get_identity_id()
            self.add_note(f"Treasury account defaulted to the operating account ({operator}).")
            return operator
        raise InputValidationError(
            "Treasury account id is required (explicitly, via the acting account in bytes mode, "
            "or via the signer in direct execution).",
            field="treasury_account_id",
        )

    def mint_fungible_token(self, token_id: Union[str, EntityId], amount: Union[int, str, Decimal]) -> "TokenBuilder":
        units = self.parse_amount(amount, 0)
        if units <= 0:
            raise InputValidationError("Mint amount must be positive.", field="amount")
        self._stage("token_mint", {"tokenId": str(EntityId.parse(token_id)), "amount": units})
        return self

    def airdrop_token(
        self,
        token_id: Union[str, EntityId],
        recipients: Sequence[Tuple[Union[str, EntityId], Union[int, str, Decimal]]],
        *,
        memo: Optional[str] = None,
    ) -> "TokenBuilder":
        """
        Stage an airdrop from the effective sender. Recipients with a zero or
        negative amount are skipped with a warning.
        """
        if not recipients:
            raise InputValidationError("Recipients are required for an airdrop.", field="recipients")
        token = str(EntityId.parse(token_id))
        sender = str(self.effective_sender_id())

        transfers = []
        for account, amount in recipients:
            units = self.parse_amount(amount, 0)
            if units <= 0:
                log.warning("Skipping airdrop to %s with zero or negative amount.", account)
                continue
            transfers.append({"tokenId": token, "accountId": sender, "amount": -units})
            transfers.append({"tokenId": token, "accountId": str(EntityId.parse(account)), "amount": units})
        if not transfers:
            raise InputValidationError(
                "No valid transfers generated for the airdrop. Check recipient amounts.", field="amount"
            )

        op = self._stage("token_airdrop", {"tokenTransfers": transfers})
        if memo:
            op.set_memo(memo)
        return self


__all__ = ["TokenBuilder", "default_symbol", "DEFAULT_TOKEN_AUTO_RENEW_S", "SUPPLY_TYPES"]
