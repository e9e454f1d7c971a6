from __future__ import annotations

import logging
from typing import Optional, Union

from pydantic import Field

from opdispatch.builders.account import NATIVE_DECIMALS, AccountBuilder
from opdispatch.tools.base import (
    BuilderTool,
    ToolParams,
    parse_json_array,
    require_account_id,
    require_item,
    require_number,
)

log = logging.getLogger(__name__)


class TransferNativeParams(ToolParams):
    transfers_json: str = Field(
        alias="transfersJson",
        description=(
            "JSON array of transfers. Each object: {accountId: '0.0.x', amount: number} "
            "in whole units, positive for credit and negative for debit. Amounts must net to zero."
        ),
    )


class TransferNativeTool(BuilderTool):
    name = "account-transfer-native"
    description = (
        "Transfers the native currency between accounts. Requires a JSON string for transfersJson; "
        "the amounts must net to zero."
    )
    params_model = TransferNativeParams
    builder_class = AccountBuilder

    async def stage(self, builder: AccountBuilder, params: TransferNativeParams) -> None:
        what = "Native transfer"
        items = parse_json_array(params.transfers_json, field="transfersJson", what="native transfer")
        transfers = []
        for number, raw in enumerate(items, start=1):
            item = require_item(raw, number, what=what, required=("accountId", "amount"))
            account = require_account_id(item, number, what=what)
            amount = require_number(item, number, what=what, decimals=NATIVE_DECIMALS)
            transfers.append((account, amount))
        builder.transfer_native(transfers)


class CreateAccountParams(ToolParams):
    key: Optional[str] = Field(
        default=None,
        alias="key",
        description="Public key (DER hex) for the new account, or 'current_signer'.",
    )
    initial_balance: Union[int, float, str] = Field(default=0, alias="initialBalance")
    memo: Optional[str] = Field(default=None, alias="memo")
    auto_renew_period: Optional[int] = Field(default=None, alias="autoRenewPeriod", gt=0)
    max_automatic_token_associations: Optional[int] = Field(
        default=None, alias="maxAutomaticTokenAssociations", ge=-1
    )
    receiver_signature_required: bool = Field(default=False, alias="receiverSignatureRequired")


class CreateAccountTool(BuilderTool):
    name = "account-create"
    description = "Creates a new account with the given key and optional initial balance."
    params_model = CreateAccountParams
    builder_class = AccountBuilder
    key_fields = ("key",)

    async def stage(self, builder: AccountBuilder, params: CreateAccountParams) -> None:
        initial = params.initial_balance
        await builder.create_account(
            key=params.key,
            initial_balance=str(initial) if isinstance(initial, float) else initial,
            memo=params.memo,
            auto_renew_period=params.auto_renew_period,
            max_automatic_token_associations=params.max_automatic_token_associations,
            receiver_signature_required=params.receiver_signature_required,
        )


__all__ = ["TransferNativeParams", "TransferNativeTool", "CreateAccountParams", "CreateAccountTool"]
