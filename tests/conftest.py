from typing import List, Optional, Tuple

import pytest

from opdispatch.config import OperationalMode, Session, SessionConfig
from opdispatch.dispatch import Dispatcher
from opdispatch.keys import PrivateKey, PublicKey
from opdispatch.ops.staged import StagedOperation
from opdispatch.types.core import EntityId, OperationId, Receipt

OPERATOR = EntityId.parse("0.0.1001")
USER = EntityId.parse("0.0.2002")
NODE = EntityId.parse("0.0.3")
FIXED_START = 1_700_000_000


class FakeNetwork:
    """
    In-memory Network Client: assigns deterministic operation ids and records
    every finalize call.
    """

    def __init__(self) -> None:
        self.finalized: List[Tuple[str, Optional[EntityId]]] = []
        self._nanos = 0

    async def finalize(self, op: StagedOperation, payer_id: Optional[EntityId] = None) -> StagedOperation:
        self.finalized.append((op.kind, payer_id))
        if op.frozen:
            return op
        self._nanos += 1
        op_id = op.operation_id or OperationId(payer_id, FIXED_START, self._nanos)
        return op.freeze(operation_id=op_id, target_endpoints=[NODE])


class FakeSigner:
    """
    Signer stub: returns a SUCCESS receipt (with a schedule id for
    schedule_create) or raises `fail` when set.
    """

    def __init__(
        self,
        identity: EntityId = OPERATOR,
        *,
        key: Optional[PrivateKey] = None,
        fail: Optional[Exception] = None,
        status: str = "SUCCESS",
        schedule_id: str = "0.0.5005",
        public_key_error: Optional[Exception] = None,
    ) -> None:
        self.identity = identity
        self.key = key or PrivateKey.generate()
        self.fail = fail
        self.status = status
        self.schedule_id = schedule_id
        self.public_key_error = public_key_error
        self.submitted: List[StagedOperation] = []

    def get_identity_id(self) -> EntityId:
        return self.identity

    async def get_public_key(self) -> PublicKey:
        if self.public_key_error is not None:
            raise self.public_key_error
        return self.key.public_key

    async def sign_and_submit(self, op: StagedOperation) -> Receipt:
        self.submitted.append(op)
        if self.fail is not None:
            raise self.fail
        return Receipt(
            status=self.status,
            operation_id=str(op.operation_id) if op.operation_id else None,
            schedule_id=self.schedule_id if op.kind == "schedule_create" else None,
        )


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def direct_session() -> Session:
    return Session(SessionConfig(mode=OperationalMode.DIRECT_EXECUTION))


@pytest.fixture
def bytes_session() -> Session:
    return Session(SessionConfig(mode=OperationalMode.PROVIDE_BYTES, acting_on_behalf_of_id=USER))


@pytest.fixture
def dispatcher(signer, network, direct_session) -> Dispatcher:
    return Dispatcher(signer, network, direct_session)
