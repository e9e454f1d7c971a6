from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import Field

from opdispatch.builders.token import TokenBuilder
from opdispatch.tools.base import (
    BuilderTool,
    ToolParams,
    parse_json_array,
    require_account_id,
    require_item,
    require_number,
)


class CreateFungibleTokenParams(ToolParams):
    token_name: str = Field(alias="tokenName", min_length=1, max_length=100)
    token_symbol: Optional[str] = Field(default=None, alias="tokenSymbol", max_length=100)
    treasury_account_id: Optional[str] = Field(default=None, alias="treasuryAccountId")
    initial_supply: Union[int, str] = Field(default=0, alias="initialSupply")
    decimals: int = Field(default=0, alias="decimals", ge=0)
    supply_type: Literal["infinite", "finite"] = Field(default="infinite", alias="supplyType")
    max_supply: Optional[Union[int, str]] = Field(default=None, alias="maxSupply")
    memo: Optional[str] = Field(default=None, alias="memo", description="Token memo.")
    auto_renew_account_id: Optional[str] = Field(default=None, alias="autoRenewAccountId")
    auto_renew_period: Optional[int] = Field(default=None, alias="autoRenewPeriod", gt=0)
    admin_key: Optional[str] = Field(default=None, alias="adminKey")
    kyc_key: Optional[str] = Field(default=None, alias="kycKey")
    freeze_key: Optional[str] = Field(default=None, alias="freezeKey")
    wipe_key: Optional[str] = Field(default=None, alias="wipeKey")
    supply_key: Optional[str] = Field(default=None, alias="supplyKey")
    fee_schedule_key: Optional[str] = Field(default=None, alias="feeScheduleKey")
    pause_key: Optional[str] = Field(default=None, alias="pauseKey")


_TOKEN_KEY_FIELDS = (
    "admin_key",
    "kyc_key",
    "freeze_key",
    "wipe_key",
    "supply_key",
    "fee_schedule_key",
    "pause_key",
)


class CreateFungibleTokenTool(BuilderTool):
    name = "token-create-fungible"
    description = (
        "Creates a fungible token. The treasury defaults to your account in bytes mode; the symbol "
        "defaults to one derived from the name. Key fields accept a DER public key or 'current_signer'."
    )
    params_model = CreateFungibleTokenParams
    builder_class = TokenBuilder
    key_fields = _TOKEN_KEY_FIELDS

    async def stage(self, builder: TokenBuilder, params: CreateFungibleTokenParams) -> None:
        await builder.create_fungible_token(
            token_name=params.token_name,
            token_symbol=params.token_symbol,
            treasury_account_id=params.treasury_account_id,
            initial_supply=params.initial_supply,
            decimals=params.decimals,
            supply_type=params.supply_type,
            max_supply=params.max_supply,
            memo=params.memo,
            auto_renew_account_id=params.auto_renew_account_id,
            auto_renew_period=params.auto_renew_period,
            **{name: getattr(params, name) for name in _TOKEN_KEY_FIELDS},
        )


class MintFungibleTokenParams(ToolParams):
    token_id: str = Field(alias="tokenId")
    amount: Union[int, str] = Field(alias="amount", description="Amount in the token's smallest unit.")


class MintFungibleTokenTool(BuilderTool):
    name = "token-mint-fungible"
    description = "Mints additional supply of a fungible token. Requires the supply key to sign."
    params_model = MintFungibleTokenParams
    builder_class = TokenBuilder

    async def stage(self, builder: TokenBuilder, params: MintFungibleTokenParams) -> None:
        builder.mint_fungible_token(params.token_id, params.amount)


class AirdropTokenParams(ToolParams):
    token_id: str = Field(alias="tokenId")
    recipients_json: str = Field(
        alias="recipientsJson",
        description="JSON array of recipients. Each object: {accountId: string, amount: number | string}.",
    )


class AirdropTokenTool(BuilderTool):
    name = "token-airdrop"
    description = "Airdrops a fungible token from your account to multiple recipients."
    params_model = AirdropTokenParams
    builder_class = TokenBuilder

    async def stage(self, builder: TokenBuilder, params: AirdropTokenParams) -> None:
        what = "Airdrop recipient"
        items = parse_json_array(params.recipients_json, field="recipientsJson", what="token airdrop")
        recipients = []
        for number, raw in enumerate(items, start=1):
            item = require_item(raw, number, what=what, required=("accountId", "amount"))
            recipients.append(
                (
                    require_account_id(item, number, what=what),
                    require_number(item, number, what=what, allow_str=True),
                )
            )
        builder.airdrop_token(params.token_id, recipients)


__all__ = [
    "CreateFungibleTokenParams",
    "CreateFungibleTokenTool",
    "MintFungibleTokenParams",
    "MintFungibleTokenTool",
    "AirdropTokenParams",
    "AirdropTokenTool",
]
