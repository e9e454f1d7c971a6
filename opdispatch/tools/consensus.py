from __future__ import annotations

from typing import Optional

from pydantic import Field

from opdispatch.builders.consensus import ConsensusBuilder
from opdispatch.tools.base import BuilderTool, ToolParams


class CreateTopicParams(ToolParams):
    memo: Optional[str] = Field(default=None, alias="memo", description="Topic memo.")
    admin_key: Optional[str] = Field(default=None, alias="adminKey")
    submit_key: Optional[str] = Field(default=None, alias="submitKey")
    auto_renew_period: Optional[int] = Field(default=None, alias="autoRenewPeriod", gt=0)
    auto_renew_account_id: Optional[str] = Field(default=None, alias="autoRenewAccountId")


class CreateTopicTool(BuilderTool):
    name = "consensus-create-topic"
    description = (
        "Creates a consensus topic. adminKey and submitKey accept a DER public key or 'current_signer'."
    )
    params_model = CreateTopicParams
    builder_class = ConsensusBuilder
    key_fields = ("admin_key", "submit_key")

    async def stage(self, builder: ConsensusBuilder, params: CreateTopicParams) -> None:
        await builder.create_topic(
            memo=params.memo,
            admin_key=params.admin_key,
            submit_key=params.submit_key,
            auto_renew_period=params.auto_renew_period,
            auto_renew_account_id=params.auto_renew_account_id,
        )


class SubmitMessageParams(ToolParams):
    topic_id: str = Field(alias="topicId")
    message: str = Field(alias="message", min_length=1)


class SubmitMessageTool(BuilderTool):
    name = "consensus-submit-message"
    description = "Submits a message to a consensus topic."
    params_model = SubmitMessageParams
    builder_class = ConsensusBuilder

    async def stage(self, builder: ConsensusBuilder, params: SubmitMessageParams) -> None:
        builder.submit_message(params.topic_id, params.message)


class DeleteTopicParams(ToolParams):
    topic_id: str = Field(alias="topicId")


class DeleteTopicTool(BuilderTool):
    name = "consensus-delete-topic"
    description = "Deletes a consensus topic. Requires the topic's admin key to sign."
    params_model = DeleteTopicParams
    builder_class = ConsensusBuilder

    async def stage(self, builder: ConsensusBuilder, params: DeleteTopicParams) -> None:
        builder.delete_topic(params.topic_id)


__all__ = [
    "CreateTopicParams",
    "CreateTopicTool",
    "SubmitMessageParams",
    "SubmitMessageTool",
    "DeleteTopicParams",
    "DeleteTopicTool",
]
