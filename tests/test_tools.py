import logging

import pytest

from conftest import OPERATOR, USER, FakeNetwork, FakeSigner
from opdispatch.builders import AccountBuilder, ConsensusBuilder, TokenBuilder
from opdispatch.config import OperationalMode, SessionConfig
from opdispatch.errors import InputValidationError
from opdispatch.tools import ALL_TOOLS, get_tool, tool_names
from opdispatch.tools.base import parse_json_array, require_item


def _stage_args(tool_name, args, session=None, signer=None):
    tool = get_tool(tool_name)
    params = tool.params_model.model_validate(args)
    builder = tool.create_builder(signer or FakeSigner(), FakeNetwork(), session or SessionConfig())
    return tool, params, builder


# ---- registry ----


def test_registry_names_are_unique_and_resolvable():
    names = tool_names()
    assert len(names) == len(set(names)) == len(ALL_TOOLS)
    for name in names:
        assert get_tool(name).name == name


def test_unknown_tool_raises_key_error():
    with pytest.raises(KeyError):
        get_tool("no-such-tool")


def test_only_schedule_management_is_never_scheduled():
    never = sorted(t.name for t in ALL_TOOLS if t.never_schedule)
    assert never == ["schedule-delete", "schedule-sign"]


def test_key_field_names_include_aliases():
    names = get_tool("consensus-create-topic").key_field_names()
    assert set(names) == {"admin_key", "adminKey", "submit_key", "submitKey"}


# ---- JSON batch helpers ----


@pytest.mark.parametrize("raw", ["not json", "{}", "[]", '"x"'])
def test_parse_json_array_rejects(raw):
    with pytest.raises(InputValidationError) as ei:
        parse_json_array(raw, field="transfersJson", what="native transfer")
    assert str(ei.value).startswith("Invalid transfersJson format for native transfer")
    assert ei.value.field == "transfersJson"


def test_require_item_reports_one_based_item_number():
    with pytest.raises(InputValidationError) as ei:
        require_item({"accountId": "0.0.5"}, 2, what="Native transfer", required=("accountId", "amount"))
    assert str(ei.value) == "Native transfer item #2 is missing required fields: accountId, amount."
    assert ei.value.index == 2
    assert ei.value.field == "amount"


# ---- native transfer ----


@pytest.mark.asyncio
async def test_transfer_missing_field_names_item():
    tool, params, builder = _stage_args(
        "account-transfer-native",
        {"transfersJson": '[{"accountId": "0.0.1", "amount": 1}, {"amount": -1}]'},
    )
    with pytest.raises(InputValidationError) as ei:
        await tool.stage(builder, params)
    assert "item #2" in str(ei.value)
    assert builder.get_staged_operation() is None


@pytest.mark.asyncio
async def test_transfer_must_net_to_zero():
    tool, params, builder = _stage_args(
        "account-transfer-native",
        {"transfersJson": '[{"accountId": "0.0.1", "amount": -1}, {"accountId": "0.0.2", "amount": 2}]'},
    )
    with pytest.raises(InputValidationError, match="sum of all native transfers must be zero"):
        await tool.stage(builder, params)


@pytest.mark.asyncio
async def test_transfer_rejects_string_amount():
    tool, params, builder = _stage_args(
        "account-transfer-native",
        {"transfersJson": '[{"accountId": "0.0.1", "amount": "1"}]'},
    )
    with pytest.raises(InputValidationError, match="must be a number"):
        await tool.stage(builder, params)


def test_transfer_native_rejects_empty_list():
    with pytest.raises(InputValidationError):
        AccountBuilder(FakeSigner(), FakeNetwork()).transfer_native([])


def test_transfer_native_rejects_excess_decimals():
    with pytest.raises(InputValidationError):
        AccountBuilder(FakeSigner(), FakeNetwork()).transfer_native([("0.0.1", "0.000000001"), ("0.0.2", "-0.000000001")])


# ---- account create ----


@pytest.mark.asyncio
async def test_create_account_requires_key():
    b = AccountBuilder(FakeSigner(), FakeNetwork())
    with pytest.raises(InputValidationError) as ei:
        await b.create_account(key=None)
    assert ei.value.field == "key"


@pytest.mark.asyncio
async def test_create_account_stages_encoded_key_and_balance():
    signer = FakeSigner()
    b = AccountBuilder(signer, FakeNetwork())
    await b.create_account(key="current_signer", initial_balance="2.5")
    op = b.get_staged_operation()
    assert op.kind == "account_create"
    assert op.body["key"] == signer.key.public_key.to_string_der()
    assert op.body["initialBalance"] == 250_000_000


# ---- consensus ----


def test_large_message_logs_warning(caplog):
    b = ConsensusBuilder(FakeSigner(), FakeNetwork())
    with caplog.at_level(logging.WARNING, logger="opdispatch.builders.consensus"):
        b.submit_message("0.0.42", "x" * 6001)
    assert caplog.records
    assert b.get_staged_operation().body["message"] == b"x" * 6001


def test_small_message_does_not_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="opdispatch.builders.consensus"):
        ConsensusBuilder(FakeSigner(), FakeNetwork()).submit_message("0.0.42", "hello")
    assert not caplog.records


@pytest.mark.asyncio
async def test_create_topic_defaults_auto_renew_period():
    b = ConsensusBuilder(FakeSigner(), FakeNetwork())
    await b.create_topic(memo="t")
    body = b.get_staged_operation().body
    assert body["topicMemo"] == "t"
    assert body["autoRenewPeriod"] == 7_776_000
    assert body["adminKey"] is None


# ---- token create ----


@pytest.mark.asyncio
async def test_token_symbol_default_note():
    b = TokenBuilder(FakeSigner(), FakeNetwork())
    await b.create_fungible_token(token_name="!!!")
    assert b.get_staged_operation().body["tokenSymbol"] == "TOKEN"
    assert "Token symbol defaulted to 'TOKEN' based on token name." in b.notes


@pytest.mark.asyncio
async def test_treasury_defaults_to_operator_in_direct_mode():
    b = TokenBuilder(FakeSigner(), FakeNetwork(), SessionConfig(acting_on_behalf_of_id=USER))
    await b.create_fungible_token(token_name="Gold", token_symbol="GLD")
    assert b.get_staged_operation().body["treasuryAccountId"] == str(OPERATOR)
    assert f"Treasury account defaulted to the operating account ({OPERATOR})." in b.notes


@pytest.mark.asyncio
async def test_explicit_treasury_adds_no_note():
    b = TokenBuilder(FakeSigner(), FakeNetwork())
    await b.create_fungible_token(token_name="Gold", token_symbol="GLD", treasury_account_id="0.0.77")
    assert b.get_staged_operation().body["treasuryAccountId"] == "0.0.77"
    assert b.notes == []


@pytest.mark.asyncio
async def test_treasury_required_without_any_identity():
    b = TokenBuilder(None, FakeNetwork(), SessionConfig())
    with pytest.raises(InputValidationError):
        await b.create_fungible_token(token_name="Gold", token_symbol="GLD")


# ---- mint ----


@pytest.mark.parametrize("amount", [0, -5, "0"])
def test_mint_requires_positive_amount(amount):
    with pytest.raises(InputValidationError):
        TokenBuilder(FakeSigner(), FakeNetwork()).mint_fungible_token("0.0.9", amount)


def test_mint_stages_amount():
    b = TokenBuilder(FakeSigner(), FakeNetwork()).mint_fungible_token("0.0.9", "250")
    assert b.get_staged_operation().body == {"tokenId": "0.0.9", "amount": 250}


# ---- airdrop ----


def test_airdrop_skips_non_positive_amounts(caplog):
    b = TokenBuilder(FakeSigner(), FakeNetwork())
    with caplog.at_level(logging.WARNING, logger="opdispatch.builders.token"):
        b.airdrop_token("0.0.9", [("0.0.10", 5), ("0.0.11", 0), ("0.0.12", "-1")])
    transfers = b.get_staged_operation().body["tokenTransfers"]
    assert transfers == [
        {"tokenId": "0.0.9", "accountId": str(OPERATOR), "amount": -5},
        {"tokenId": "0.0.9", "accountId": "0.0.10", "amount": 5},
    ]
    assert len(caplog.records) == 2


def test_airdrop_all_invalid_is_error():
    b = TokenBuilder(FakeSigner(), FakeNetwork())
    with pytest.raises(InputValidationError, match="No valid transfers"):
        b.airdrop_token("0.0.9", [("0.0.10", 0)])
    assert b.get_staged_operation() is None


def test_airdrop_sender_is_acting_identity():
    b = TokenBuilder(
        FakeSigner(),
        FakeNetwork(),
        SessionConfig(mode=OperationalMode.PROVIDE_BYTES, acting_on_behalf_of_id=USER),
    )
    b.airdrop_token("0.0.9", [("0.0.10", 1)], memo="drop")
    op = b.get_staged_operation()
    assert op.body["tokenTransfers"][0]["accountId"] == str(USER)
    assert op.memo == "drop"


@pytest.mark.asyncio
async def test_airdrop_tool_accepts_string_amounts():
    tool, params, builder = _stage_args(
        "token-airdrop",
        {"tokenId": "0.0.9", "recipientsJson": '[{"accountId": "0.0.10", "amount": "3"}]'},
    )
    await tool.stage(builder, params)
    assert builder.get_staged_operation().body["tokenTransfers"][1]["amount"] == 3


@pytest.mark.asyncio
async def test_airdrop_tool_reports_malformed_json():
    tool, params, builder = _stage_args("token-airdrop", {"tokenId": "0.0.9", "recipientsJson": "[{"})
    with pytest.raises(InputValidationError, match="Invalid recipientsJson format for token airdrop"):
        await tool.stage(builder, params)


# ---- per-item format errors ----


@pytest.mark.asyncio
async def test_transfer_invalid_account_names_item():
    tool, params, builder = _stage_args(
        "account-transfer-native",
        {"transfersJson": '[{"accountId": "0.0.1", "amount": -1}, {"accountId": "bogus", "amount": 1}]'},
    )
    with pytest.raises(InputValidationError) as ei:
        await tool.stage(builder, params)
    assert str(ei.value) == "Native transfer #2 has an invalid accountId: 'bogus'."
    assert ei.value.field == "accountId"
    assert ei.value.index == 2


@pytest.mark.asyncio
async def test_transfer_excess_decimals_names_item():
    tool, params, builder = _stage_args(
        "account-transfer-native",
        {"transfersJson": '[{"accountId": "0.0.1", "amount": 0.000000001}, {"accountId": "0.0.2", "amount": -1}]'},
    )
    with pytest.raises(InputValidationError) as ei:
        await tool.stage(builder, params)
    assert str(ei.value).startswith("Native transfer #1: ")
    assert ei.value.index == 1
    assert ei.value.field == "amount"


@pytest.mark.asyncio
async def test_airdrop_invalid_amount_names_item():
    tool, params, builder = _stage_args(
        "token-airdrop",
        {
            "tokenId": "0.0.9",
            "recipientsJson": '[{"accountId": "0.0.10", "amount": 1}, {"accountId": "0.0.11", "amount": "abc"}]',
        },
    )
    with pytest.raises(InputValidationError) as ei:
        await tool.stage(builder, params)
    assert str(ei.value).startswith("Airdrop recipient #2: ")
    assert "'abc'" in str(ei.value)
    assert ei.value.index == 2
    assert builder.get_staged_operation() is None
