"""
Consensus topic operations: create, submit message, delete.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from opdispatch.builders.base import OperationBuilder
from opdispatch.keys import encode_key
from opdispatch.types.core import EntityId

log = logging.getLogger(__name__)

DEFAULT_TOPIC_AUTO_RENEW_S = 7_776_000
MAX_SINGLE_MESSAGE_BYTES = 6000


class ConsensusBuilder(OperationBuilder):
    async def create_topic(
        self,
        *,
        memo: Optional[str] = None,
        admin_key: Any = None,
        submit_key: Any = None,
        auto_renew_period: Optional[int] = None,
        auto_renew_account_id: Optional[Union[str, EntityId]] = None,
    ) -> "ConsensusBuilder":
        """
        Stage a topic creation. `memo` is the topic's own memo, not the
        operation memo (use `set_memo` for that).
        """
        admin = await self.keys.resolve(admin_key)
        submit = await self.keys.resolve(submit_key)
        body: Dict[str, Any] = {
            "topicMemo": memo or "",
            "adminKey": encode_key(admin) if admin is not None else None,
            "submitKey": encode_key(submit) if submit is not None else None,
            "autoRenewPeriod": int(auto_renew_period or DEFAULT_TOPIC_AUTO_RENEW_S),
        }
        if auto_renew_account_id:
            body["autoRenewAccountId"] = str(EntityId.parse(auto_renew_account_id))
        self._stage("topic_create", body)
        return self

    def submit_message(self, topic_id: Union[str, EntityId], message: Union[str, bytes]) -> "ConsensusBuilder":
        data = message.encode("utf-8") if isinstance(message, str) else bytes(message)
        if len(data) > MAX_SINGLE_MESSAGE_BYTES:
            log.warning(
                "Message size (%d bytes) exceeds the recommended single operation limit (%d bytes); "
                "the network will likely reject it.",
                len(data),
                MAX_SINGLE_MESSAGE_BYTES,
            )
        self._stage("topic_message_submit", {"topicId": str(EntityId.parse(topic_id)), "message": data})
        return self

    def delete_topic(self, topic_id: Union[str, EntityId]) -> "ConsensusBuilder":
        self._stage("topic_delete", {"topicId": str(EntityId.parse(topic_id))})
        return self


__all__ = ["ConsensusBuilder", "DEFAULT_TOPIC_AUTO_RENEW_S", "MAX_SINGLE_MESSAGE_BYTES"]
