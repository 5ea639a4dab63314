"""Custom exception classes."""

from fastapi import HTTPException, status


class CarpoolException(HTTPException):
    """Base exception for application errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        code: str = "CARPOOL_ERROR",
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


class NotRegisteredError(CarpoolException):
    def __init__(self, user_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} is not registered. Set a home address first.",
            code="NOT_REGISTERED",
        )


class NoScheduleError(CarpoolException):
    def __init__(self, user_id: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User {user_id} has no work schedule. Set a schedule or office first.",
            code="NO_SCHEDULE",
        )


class AddressNotFoundError(CarpoolException):
    def __init__(self, address: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Could not find coordinates for address: {address!r}",
            code="ADDRESS_NOT_FOUND",
        )


class OfficeNotFoundError(CarpoolException):
    def __init__(self, name: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Office not found: {name}",
            code="OFFICE_NOT_FOUND",
        )


class GroupNotFoundError(CarpoolException):
    def __init__(self, name: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Carpool group not found: {name}",
            code="GROUP_NOT_FOUND",
        )


class DuplicateNameError(CarpoolException):
    def __init__(self, kind: str, name: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{kind.capitalize()} {name!r} already exists",
            code="DUPLICATE_NAME",
        )


class GroupFullError(CarpoolException):
    def __init__(self, name: str, max_size: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Carpool group {name} is full ({max_size}/{max_size})",
            code="GROUP_FULL",
        )


class AlreadyMemberError(CarpoolException):
    def __init__(self, name: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Already a member of carpool group {name}",
            code="ALREADY_MEMBER",
        )


class NotAMemberError(CarpoolException):
    def __init__(self, name: str | None = None):
        detail = (
            f"Not a member of carpool group {name}"
            if name
            else "Not a member of any carpool group"
        )
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            code="NOT_A_MEMBER",
        )


class InvalidTimeFormatError(CarpoolException):
    def __init__(self, value: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid time {value!r}: expected 24-hour HH:MM",
            code="INVALID_TIME_FORMAT",
        )


class InvalidDaysError(CarpoolException):
    def __init__(self, value: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Invalid days {value!r}: expected a comma-separated list "
                "of weekdays 1-7 (1=Monday)"
            ),
            code="INVALID_DAYS",
        )


class InvalidCapacityError(CarpoolException):
    def __init__(self, value: object):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid group capacity {value!r}: must be a positive integer",
            code="INVALID_CAPACITY",
        )


class ScheduleNotFoundError(CarpoolException):
    def __init__(self, schedule_id: int):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Schedule not found: {schedule_id}",
            code="SCHEDULE_NOT_FOUND",
        )


class LookupUnavailableError(CarpoolException):
    def __init__(self, reason: str = "Geocoding service unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=reason,
            code="LOOKUP_UNAVAILABLE",
        )


class StoreError(CarpoolException):
    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=message,
            code="STORE_ERROR",
        )


class DuplicateEntryError(StoreError):
    """Raised by repositories when a unique constraint rejects a write."""

    def __init__(self, entity: str, fields: dict):
        self.entity = entity
        self.fields = fields
        super().__init__(f"Duplicate {entity}: {fields}")
        self.code = "DUPLICATE_ENTRY"


class InternalError(CarpoolException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong. Please try again later.",
            code="INTERNAL_ERROR",
        )


class UnknownCommandError(CarpoolException):
    def __init__(self, name: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown command: {name}",
            code="UNKNOWN_COMMAND",
        )


class InvalidCommandError(CarpoolException):
    def __init__(self, name: str, reason: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid options for {name}: {reason}",
            code="INVALID_COMMAND",
        )


class ForbiddenError(CarpoolException):
    def __init__(self, detail: str = "Admin role required"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            code="FORBIDDEN",
        )
