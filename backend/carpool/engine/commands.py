"""Command types accepted by the dispatcher.

Each command is a frozen dataclass carrying its chat name and whether it
needs the admin role. ``parse_command`` builds one from chat-style options
such as ``{"location": "HQ", "starttime": "08:00"}``.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Optional, Union

from carpool.core.exceptions import InvalidCommandError, UnknownCommandError


@dataclass(frozen=True)
class SetHome:
    command_name: ClassVar[str] = "set-home"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str
    address: str


@dataclass(frozen=True)
class SetOffice:
    command_name: ClassVar[str] = "set-office"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {"office_name": "name"}

    user_id: str
    office_name: str


@dataclass(frozen=True)
class SetSchedule:
    command_name: ClassVar[str] = "set-schedule"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {
        "office_name": "location",
        "start_time": "starttime",
        "end_time": "endtime",
    }

    user_id: str
    office_name: str
    start_time: str
    end_time: str
    days: str


@dataclass(frozen=True)
class DeleteSchedule:
    command_name: ClassVar[str] = "delete-schedule"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str
    schedule_id: int


@dataclass(frozen=True)
class ListSchedules:
    command_name: ClassVar[str] = "schedules"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str


@dataclass(frozen=True)
class FindCarpool:
    command_name: ClassVar[str] = "find"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str


@dataclass(frozen=True)
class MyCarpools:
    command_name: ClassVar[str] = "my-carpools"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str


@dataclass(frozen=True)
class JoinGroup:
    command_name: ClassVar[str] = "join"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {"group_name": "group"}

    user_id: str
    group_name: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class SetOrganizer:
    command_name: ClassVar[str] = "set-organizer"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {"group_name": "group"}

    user_id: str
    group_name: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class SetNotifications:
    command_name: ClassVar[str] = "notify"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str
    enabled: bool


@dataclass(frozen=True)
class ReportAbsence:
    command_name: ClassVar[str] = "out"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str
    date: str
    reason: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class SendMessage:
    command_name: ClassVar[str] = "message"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str
    text: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class Stats:
    command_name: ClassVar[str] = "stats"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str


@dataclass(frozen=True)
class ListOffices:
    command_name: ClassVar[str] = "find-offices"
    admin_only: ClassVar[bool] = False
    option_names: ClassVar[dict[str, str]] = {"reference_address": "zipcode"}

    user_id: str
    reference_address: Optional[str] = None


@dataclass(frozen=True)
class AddOffice:
    command_name: ClassVar[str] = "add-office"
    admin_only: ClassVar[bool] = True
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str
    name: str
    address: str


@dataclass(frozen=True)
class CreateGroup:
    command_name: ClassVar[str] = "admin-create"
    admin_only: ClassVar[bool] = True
    option_names: ClassVar[dict[str, str]] = {"office_name": "location"}

    user_id: str
    name: str
    office_name: str
    max_size: int


@dataclass(frozen=True)
class ListGroups:
    command_name: ClassVar[str] = "admin-list"
    admin_only: ClassVar[bool] = True
    option_names: ClassVar[dict[str, str]] = {}

    user_id: str


@dataclass(frozen=True)
class Announce:
    command_name: ClassVar[str] = "admin-announce"
    admin_only: ClassVar[bool] = True
    option_names: ClassVar[dict[str, str]] = {"text": "message"}

    user_id: str
    text: str


Command = Union[
    SetHome,
    SetOffice,
    SetSchedule,
    DeleteSchedule,
    ListSchedules,
    FindCarpool,
    MyCarpools,
    JoinGroup,
    SetOrganizer,
    SetNotifications,
    ReportAbsence,
    SendMessage,
    Stats,
    ListOffices,
    AddOffice,
    CreateGroup,
    ListGroups,
    Announce,
]

COMMAND_TYPES: tuple[type, ...] = Command.__args__

COMMANDS_BY_NAME: dict[str, type] = {cls.command_name: cls for cls in COMMAND_TYPES}

TRUE_VALUES = {"true", "yes", "on", "1"}
FALSE_VALUES = {"false", "no", "off", "0"}


def parse_command(name: str, user_id: str, options: Optional[Mapping[str, Any]] = None) -> Command:
    """
    Build a command from its chat name and options.

    ``admin`` with an ``action`` option resolves to the matching admin
    command, so ``parse_command("admin", uid, {"action": "list"})`` is a
    ``ListGroups``.

    Raises UnknownCommandError or InvalidCommandError.
    """
    options = dict(options or {})
    if name == "admin":
        action = options.pop("action", None)
        if not action:
            raise InvalidCommandError(name, "missing option 'action'")
        name = f"admin-{action}"

    command_type = COMMANDS_BY_NAME.get(name)
    if command_type is None:
        raise UnknownCommandError(name)

    values: dict[str, Any] = {"user_id": user_id}
    for field in dataclasses.fields(command_type):
        if field.name == "user_id":
            continue

        key = command_type.option_names.get(field.name, field.name.replace("_", "-"))
        for candidate in (key, field.name):
            if options.get(candidate) is not None:
                values[field.name] = _coerce(name, field.name, field.type, options[candidate])
                break
        else:
            if field.default is dataclasses.MISSING:
                raise InvalidCommandError(name, f"missing option {key!r}")

    return command_type(**values)


def _coerce(command_name: str, field_name: str, field_type: Any, value: Any) -> Any:
    if field_type is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
        raise InvalidCommandError(command_name, f"{field_name} must be true or false")

    if field_type is int and isinstance(value, str):
        text = value.strip()
        if text.removeprefix("-").isdecimal():
            return int(text)
        # Left for the operation's own validation to reject.
        return value

    return value
