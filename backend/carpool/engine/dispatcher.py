"""Command dispatch onto the carpool services."""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional

from carpool.config import Settings, get_settings
from carpool.core.exceptions import CarpoolException
from carpool.engine.commands import (
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
from carpool.geo.geocoder import Geocoder
from carpool.models.records import ScheduleDefaults
from carpool.repositories.base import CarpoolStore
from carpool.services.membership_service import MembershipCoordinator
from carpool.services.notification_service import (
    CarpoolMessenger,
    NotificationFanout,
    Notifier,
)
from carpool.services.office_directory import OfficeDirectory
from carpool.services.schedule_matcher import ScheduleMatcher

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Any]]


class CarpoolEngine:
    """Wires the carpool services over one store, geocoder and notifier."""

    def __init__(
        self,
        store: CarpoolStore,
        geocoder: Geocoder,
        notifier: Notifier,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.store = store
        self.geocoder = geocoder
        self.notifier = notifier

        self.fanout = NotificationFanout(store, notifier)
        self.matcher = ScheduleMatcher(store)
        self.coordinator = MembershipCoordinator(
            store,
            geocoder,
            self.fanout,
            ScheduleDefaults(
                start_time=settings.default_schedule_start,
                end_time=settings.default_schedule_end,
                days_of_week=settings.default_schedule_days,
            ),
        )
        self.messenger = CarpoolMessenger(store, self.fanout)
        self.directory = OfficeDirectory(store, geocoder)


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    value: Any = None
    error_code: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "CommandResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error_code: str, detail: str) -> "CommandResult":
        return cls(ok=False, error_code=error_code, detail=detail)


class CommandDispatcher:
    """Routes each command type to its handler and reports a CommandResult."""

    def __init__(self, handlers: Mapping[type, Handler]):
        self.handlers = MappingProxyType(dict(handlers))

    async def dispatch(self, command: Command, is_admin: bool = False) -> CommandResult:
        handler = self.handlers.get(type(command))
        if handler is None:
            return CommandResult.failure(
                "UNKNOWN_COMMAND",
                f"Unknown command: {type(command).__name__}",
            )

        if command.admin_only and not is_admin:
            return CommandResult.failure(
                "FORBIDDEN",
                f"{command.command_name} requires the admin role",
            )

        try:
            value = await handler(command)
        except CarpoolException as e:
            logger.info("%s by %s failed: %s", command.command_name, command.user_id, e.code)
            return CommandResult.failure(e.code, e.detail)
        except Exception:
            logger.exception("Unexpected error handling %s", command.command_name)
            return CommandResult.failure(
                "INTERNAL_ERROR",
                "Something went wrong. Please try again later.",
            )

        return CommandResult.success(value)

    async def execute(
        self,
        name: str,
        user_id: str,
        options: Optional[Mapping[str, Any]] = None,
        is_admin: bool = False,
    ) -> CommandResult:
        """Parse a chat-style command and dispatch it."""
        try:
            command = parse_command(name, user_id, options)
        except CarpoolException as e:
            return CommandResult.failure(e.code, e.detail)
        return await self.dispatch(command, is_admin=is_admin)


def build_dispatcher(engine: CarpoolEngine) -> CommandDispatcher:
    coordinator = engine.coordinator
    matcher = engine.matcher
    messenger = engine.messenger
    directory = engine.directory

    return CommandDispatcher({
        SetHome: lambda c: coordinator.register_home(c.user_id, c.address),
        SetOffice: lambda c: coordinator.set_user_office(c.user_id, c.office_name),
        SetSchedule: lambda c: coordinator.set_schedule(
            c.user_id, c.office_name, c.start_time, c.end_time, c.days
        ),
        DeleteSchedule: lambda c: coordinator.delete_schedule(c.user_id, c.schedule_id),
        ListSchedules: lambda c: coordinator.list_schedules(c.user_id),
        FindCarpool: lambda c: matcher.find_candidate_groups(c.user_id),
        MyCarpools: lambda c: matcher.find_member_groups(c.user_id),
        JoinGroup: lambda c: coordinator.join_group(c.user_id, c.group_name, c.display_name),
        SetOrganizer: lambda c: coordinator.set_organizer(c.user_id, c.group_name, c.display_name),
        SetNotifications: lambda c: coordinator.set_notifications(c.user_id, c.enabled),
        ReportAbsence: lambda c: messenger.report_absence(
            c.user_id, c.date, c.reason, c.display_name
        ),
        SendMessage: lambda c: messenger.send_message(c.user_id, c.text, c.display_name),
        Stats: lambda c: directory.stats(),
        ListOffices: lambda c: directory.list_offices(c.reference_address),
        AddOffice: lambda c: coordinator.add_office(c.name, c.address),
        CreateGroup: lambda c: coordinator.create_group(c.name, c.office_name, c.max_size),
        ListGroups: lambda c: matcher.list_groups(),
        Announce: lambda c: messenger.announce(c.text),
    })
