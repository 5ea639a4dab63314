"""Command parsing and dispatch for chat and API adapters."""

from carpool.engine.commands import (
    COMMANDS_BY_NAME,
    AddOffice,
    Announce,
    Command,
    CreateGroup,
    DeleteSchedule,
    FindCarpool,
    JoinGroup,
    ListGroups,
    ListOffices,
    ListSchedules,
    MyCarpools,
    ReportAbsence,
    SendMessage,
    SetHome,
    SetNotifications,
    SetOffice,
    SetOrganizer,
    SetSchedule,
    Stats,
    parse_command,
)
from carpool.engine.dispatcher import (
    CarpoolEngine,
    CommandDispatcher,
    CommandResult,
    build_dispatcher,
)

__all__ = [
    "COMMANDS_BY_NAME",
    "AddOffice",
    "Announce",
    "Command",
    "CreateGroup",
    "DeleteSchedule",
    "FindCarpool",
    "JoinGroup",
    "ListGroups",
    "ListOffices",
    "ListSchedules",
    "MyCarpools",
    "ReportAbsence",
    "SendMessage",
    "SetHome",
    "SetNotifications",
    "SetOffice",
    "SetOrganizer",
    "SetSchedule",
    "Stats",
    "parse_command",
    "CarpoolEngine",
    "CommandDispatcher",
    "CommandResult",
    "build_dispatcher",
]
