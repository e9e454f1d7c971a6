from __future__ import annotations

from pydantic import Field

from opdispatch.builders.schedule import ScheduleBuilder
from opdispatch.tools.base import BuilderTool, ToolParams


class ScheduleIdParams(ToolParams):
    schedule_id: str = Field(alias="scheduleId")


class SignScheduleTool(BuilderTool):
    name = "schedule-sign"
    description = "Adds the signer's signature to an existing schedule."
    params_model = ScheduleIdParams
    builder_class = ScheduleBuilder
    never_schedule = True

    async def stage(self, builder: ScheduleBuilder, params: ScheduleIdParams) -> None:
        builder.sign_schedule(params.schedule_id)


class DeleteScheduleTool(BuilderTool):
    name = "schedule-delete"
    description = "Deletes a schedule. Requires the schedule's admin key to sign."
    params_model = ScheduleIdParams
    builder_class = ScheduleBuilder
    never_schedule = True

    async def stage(self, builder: ScheduleBuilder, params: ScheduleIdParams) -> None:
        builder.delete_schedule(params.schedule_id)


__all__ = ["ScheduleIdParams", "SignScheduleTool", "DeleteScheduleTool"]
