import base64
import logging

import pytest

from conftest import OPERATOR, USER, FakeNetwork, FakeSigner
from opdispatch.config import OperationalMode, Session, SessionConfig
from opdispatch.dispatch import Dispatcher, MetaOptions
from opdispatch.ops import encode
from opdispatch.tools import get_tool

TRANSFERS = '[{"accountId": "0.0.1001", "amount": -1.5}, {"accountId": "0.0.2002", "amount": 1.5}]'


def _bytes_dispatcher(signer, network, *, schedule_default=False, acting=USER) -> Dispatcher:
    session = Session(
        SessionConfig(
            mode=OperationalMode.PROVIDE_BYTES,
            schedule_by_default_in_bytes_mode=schedule_default,
            acting_on_behalf_of_id=acting,
        )
    )
    return Dispatcher(signer, network, session)


# ---- Scenario A: direct mode, no schedule ----


@pytest.mark.asyncio
async def test_direct_mode_executes_without_schedule(dispatcher, signer):
    out = await dispatcher.dispatch(get_tool("account-transfer-native"), {"transfersJson": TRANSFERS})
    assert out["success"] is True
    assert out["receipt"]["status"] == "SUCCESS"
    assert "scheduleId" not in out
    assert signer.submitted[0].kind == "account_transfer"
    assert signer.submitted[0].body["transfers"] == [
        {"accountId": "0.0.1001", "amount": -150_000_000},
        {"accountId": "0.0.2002", "amount": 150_000_000},
    ]


# ---- Scenario B: bytes mode, default no-schedule ----


@pytest.mark.asyncio
async def test_bytes_mode_returns_operation_bytes(signer, network):
    d = _bytes_dispatcher(signer, network)
    out = await d.dispatch(get_tool("consensus-submit-message"), {"topicId": "0.0.42", "message": "hi"})
    assert out["success"] is True
    op = encode.from_base64_string(out["operationBytes"])
    assert op.kind == "topic_message_submit"
    assert op.payer == USER
    assert out["operationId"] == str(op.operation_id)
    # nothing submitted
    assert signer.submitted == []


@pytest.mark.asyncio
async def test_bytes_mode_without_acting_identity_uses_operator(signer, network):
    d = _bytes_dispatcher(signer, network, acting=None)
    out = await d.dispatch(get_tool("consensus-delete-topic"), {"topicId": "0.0.42"})
    assert encode.from_base64_string(out["operationBytes"]).payer == OPERATOR


# ---- Scenario C: bytes mode, default schedule on ----


@pytest.mark.asyncio
async def test_bytes_mode_schedules_by_default(signer, network):
    d = _bytes_dispatcher(signer, network, schedule_default=True)
    out = await d.dispatch(
        get_tool("consensus-submit-message"),
        {"topicId": "0.0.42", "message": "hi", "metaOptions": {"memo": "pay me later"}},
    )
    assert out == {
        "success": True,
        "op": "schedule_create",
        "schedule_id": "0.0.5005",
        "description": "pay me later User (0.0.2002) will be payer of scheduled operation.",
        "payer_account_id_scheduled_op": "0.0.2002",
        "memo_scheduled_op": "pay me later",
    }
    outer = signer.submitted[0]
    assert outer.kind == "schedule_create"
    assert outer.body["payerAccountId"] == str(OPERATOR)
    assert outer.body["scheduledOperation"]["memo"] == "pay me later"


@pytest.mark.asyncio
async def test_scheduled_payer_unknown_without_acting_identity(signer, network):
    d = _bytes_dispatcher(signer, network, schedule_default=True, acting=None)
    out = await d.dispatch(get_tool("consensus-delete-topic"), {"topicId": "0.0.42"})
    assert out["payer_account_id_scheduled_op"] == "unknown"
    assert out["description"] == "Scheduled consensus-delete-topic operation."
    assert out["memo_scheduled_op"] is None


# ---- Scenario D: validation failure ----


@pytest.mark.asyncio
async def test_empty_batch_fails_without_staging_or_network(dispatcher, signer, network):
    out = await dispatcher.dispatch(get_tool("account-transfer-native"), {"transfersJson": "[]"})
    assert out["success"] is False
    assert "transfersJson" in out["error"]
    assert signer.submitted == []
    assert network.finalized == []


@pytest.mark.asyncio
async def test_params_validation_error_is_reported(dispatcher):
    out = await dispatcher.dispatch(get_tool("consensus-submit-message"), {"message": "hi"})
    assert out["success"] is False
    assert out["error"].startswith("Invalid parameters for consensus-submit-message")
    assert "topicId" in out["error"]


@pytest.mark.asyncio
async def test_staging_error_is_reported(dispatcher):
    out = await dispatcher.dispatch(get_tool("consensus-delete-topic"), {"topicId": "not-an-id"})
    assert out == {"success": False, "error": "invalid entity id: 'not-an-id'"}


# ---- Scenario E: submission failure ----


@pytest.mark.asyncio
async def test_signer_failure_reports_attempted_operation_id(network, direct_session):
    signer = FakeSigner(fail=RuntimeError("node unreachable"))
    d = Dispatcher(signer, network, direct_session)
    out = await d.dispatch(get_tool("consensus-delete-topic"), {"topicId": "0.0.42"})
    assert out["success"] is False
    assert out["error"] == "node unreachable"
    assert out["operationId"] == str(signer.submitted[0].operation_id)


@pytest.mark.asyncio
async def test_scheduled_failure_keeps_error(network):
    signer = FakeSigner(fail=RuntimeError("boom"))
    d = _bytes_dispatcher(signer, network, schedule_default=True)
    out = await d.dispatch(get_tool("consensus-delete-topic"), {"topicId": "0.0.42"})
    assert out == {"success": False, "error": "boom"}


# ---- scheduling priority ----


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", list(OperationalMode))
@pytest.mark.parametrize("schedule", [None, True, False])
@pytest.mark.parametrize("default", [True, False])
async def test_never_schedulable_tools_are_never_wrapped(mode, schedule, default):
    signer, network = FakeSigner(), FakeNetwork()
    session = Session(SessionConfig(mode=mode, schedule_by_default_in_bytes_mode=default))
    d = Dispatcher(signer, network, session)
    args = {"scheduleId": "0.0.5005", "metaOptions": {"schedule": schedule}}
    out = await d.dispatch(get_tool("schedule-sign"), args)
    assert out["success"] is True
    assert "op" not in out
    kinds = [k for k, _ in network.finalized]
    assert "schedule_create" not in kinds


@pytest.mark.asyncio
async def test_explicit_false_beats_session_default(signer, network):
    d = _bytes_dispatcher(signer, network, schedule_default=True)
    out = await d.dispatch(
        get_tool("consensus-delete-topic"), {"topicId": "0.0.42", "metaOptions": {"schedule": False}}
    )
    assert "operationBytes" in out


@pytest.mark.asyncio
async def test_direct_mode_ignores_session_default_but_honours_explicit(signer, network):
    session = Session(SessionConfig(schedule_by_default_in_bytes_mode=True))
    d = Dispatcher(signer, network, session)
    plain = await d.dispatch(get_tool("consensus-delete-topic"), {"topicId": "0.0.42"})
    assert "op" not in plain
    scheduled = await d.dispatch(
        get_tool("consensus-delete-topic"), {"topicId": "0.0.43", "meta_options": {"schedule": True}}
    )
    assert scheduled["op"] == "schedule_create"


@pytest.mark.asyncio
async def test_session_replace_applies_to_next_dispatch(signer, network, direct_session):
    d = Dispatcher(signer, network, direct_session)
    direct_session.set_operational_mode("provideBytes")
    out = await d.dispatch(get_tool("consensus-delete-topic"), {"topicId": "0.0.42"})
    assert "operationBytes" in out


# ---- meta options and key substitution ----


def test_meta_options_accept_both_key_styles():
    a = MetaOptions.model_validate({"explicitId": "0.0.1@1.0", "schedulePayerId": "0.0.9"})
    b = MetaOptions.model_validate({"explicit_id": "0.0.1@1.0", "schedule_payer_id": "0.0.9"})
    assert a == b


@pytest.mark.asyncio
async def test_meta_options_applied_to_inner_operation(signer, network):
    d = _bytes_dispatcher(signer, network)
    out = await d.dispatch(
        get_tool("consensus-delete-topic"),
        {
            "topicId": "0.0.42",
            "metaOptions": {
                "memo": "note",
                "explicitId": "0.0.2002@1700000000.000000009",
                "targetEndpoints": ["0.0.7"],
            },
        },
    )
    op = encode.from_base64_string(out["operationBytes"])
    assert op.memo == "note"
    assert out["operationId"] == "0.0.2002@1700000000.000000009"
    assert [str(t) for t in op.target_endpoints] == ["0.0.7"]


@pytest.mark.asyncio
async def test_invalid_explicit_id_is_ignored_with_warning(dispatcher, signer, caplog):
    with caplog.at_level(logging.WARNING, logger="opdispatch.dispatch"):
        out = await dispatcher.dispatch(
            get_tool("consensus-delete-topic"), {"topicId": "0.0.42", "metaOptions": {"explicitId": "bogus"}}
        )
    assert out["success"] is True
    assert any("explicitId" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_current_signer_substituted_before_staging(dispatcher, signer):
    out = await dispatcher.dispatch(
        get_tool("consensus-create-topic"),
        {"memo": "ops", "adminKey": "current_signer", "submitKey": "current_signer"},
    )
    assert out["success"] is True
    body = signer.submitted[0].body
    der = signer.key.public_key.to_string_der()
    assert body["adminKey"] == der
    assert body["submitKey"] == der
    assert body["autoRenewPeriod"] == 7_776_000


@pytest.mark.asyncio
async def test_current_signer_without_signer_is_failure(network):
    d = Dispatcher(None, network, Session(SessionConfig(mode=OperationalMode.PROVIDE_BYTES, acting_on_behalf_of_id=USER)))
    out = await d.dispatch(get_tool("consensus-create-topic"), {"adminKey": "current_signer"})
    assert out["success"] is False
    assert "current_signer" in out["error"]


@pytest.mark.asyncio
async def test_notes_travel_into_results(signer, network):
    d = _bytes_dispatcher(signer, network)
    out = await d.dispatch(get_tool("token-create-fungible"), {"tokenName": "My Cool Token!"})
    assert out["success"] is True
    assert "Token symbol defaulted to 'MYCOO' based on token name." in out["notes"]
    assert "Treasury account defaulted to your account (0.0.2002)." in out["notes"]
    op = encode.from_bytes(base64.b64decode(out["operationBytes"]))
    assert op.body["treasuryAccountId"] == "0.0.2002"


# ---- collaborator failures ----


class UnreachableNetwork(FakeNetwork):
    async def finalize(self, op, payer_id=None):
        raise ConnectionError("network down")


@pytest.mark.asyncio
async def test_network_failure_in_bytes_mode_is_reported(signer):
    d = _bytes_dispatcher(signer, UnreachableNetwork())
    out = await d.dispatch(get_tool("consensus-delete-topic"), {"topicId": "0.0.42"})
    assert out == {"success": False, "error": "network down"}


@pytest.mark.asyncio
async def test_signer_key_failure_while_scheduling_is_reported(network, direct_session):
    signer = FakeSigner(public_key_error=RuntimeError("hsm offline"))
    d = Dispatcher(signer, network, direct_session)
    out = await d.dispatch(
        get_tool("consensus-delete-topic"),
        {"topicId": "0.0.42", "metaOptions": {"schedule": True, "scheduleAdminKey": "current_signer"}},
    )
    assert out == {"success": False, "error": "hsm offline"}
    assert signer.submitted == []


@pytest.mark.asyncio
async def test_signer_key_failure_while_scheduling_bytes_is_reported(network):
    signer = FakeSigner(public_key_error=RuntimeError("hsm offline"))
    d = _bytes_dispatcher(signer, network, schedule_default=True)
    out = await d.dispatch(
        get_tool("consensus-delete-topic"),
        {"topicId": "0.0.42", "metaOptions": {"scheduleAdminKey": "current_signer"}},
    )
    assert out == {"success": False, "error": "hsm offline"}
    assert network.finalized == []


@pytest.mark.asyncio
async def test_bad_batch_item_is_named_in_result(dispatcher, signer):
    transfers = '[{"accountId": "0.0.1001", "amount": -1}, {"accountId": "bogus", "amount": 1}]'
    out = await dispatcher.dispatch(get_tool("account-transfer-native"), {"transfersJson": transfers})
    assert out["success"] is False
    assert "#2" in out["error"]
    assert signer.submitted == []
