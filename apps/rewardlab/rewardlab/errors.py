from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    NOT_FOUND = "NOT_FOUND"
    CONSTRAINT = "CONSTRAINT"
    PRECONDITION = "PRECONDITION"
    STORE_IO = "STORE_IO"
    PARTIAL_EVENT = "PARTIAL_EVENT"
    INVALID_INPUT = "INVALID_INPUT"


class RewardError(Exception):
    code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(RewardError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, ident) -> None:
        super().__init__(f"{entity} {ident} not found")
        self.entity = entity
        self.ident = ident


class ConstraintError(RewardError):
    code = ErrorCode.CONSTRAINT


class PreconditionError(RewardError):
    code = ErrorCode.PRECONDITION

    OUT_OF_STOCK = "out of stock"
    INSUFFICIENT_BALANCE = "insufficient balance"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StoreIOError(RewardError):
    code = ErrorCode.STORE_IO


class PartialEventError(RewardError):
    code = ErrorCode.PARTIAL_EVENT

    def __init__(self, event_id: int, tasks_created: int, items_created: int, cause: RewardError) -> None:
        super().__init__(
            f"event {event_id} was created with {tasks_created} task(s) and "
            f"{items_created} store item(s) before failing: {cause.message}"
        )
        self.event_id = event_id
        self.tasks_created = tasks_created
        self.items_created = items_created
        self.cause = cause


class InputError(RewardError):
    code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, value: Optional[str] = None) -> None:
        super().__init__(message)
        self.value = value
