"""
opdispatch.builders
===================

Operation builders. Each family stages one operation per builder instance;
`OperationBuilder` supplies the setters and the execute / get_bytes paths.
"""

from __future__ import annotations

from .base import OperationBuilder
from .account import AccountBuilder
from .consensus import ConsensusBuilder
from .schedule import ScheduleBuilder, ScheduleOptions, wrap
from .token import TokenBuilder

__all__ = [
    "OperationBuilder",
    "AccountBuilder",
    "ConsensusBuilder",
    "ScheduleBuilder",
    "ScheduleOptions",
    "TokenBuilder",
    "wrap",
]
