from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator

from rewardlab.config import Config

UNLIMITED_STOCK = -1

CURRENCY_NAME_MAX = 49
SYMBOL_MAX = 9
EVENT_NAME_MAX = 99
DESCRIPTION_MAX = 255
CATEGORY_MAX = 49

SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1


def parse_timestamp(value: str) -> datetime:
    try:
        return datetime.strptime(value.strip(), Config.TIMESTAMP_FORMAT)
    except ValueError:
        raise ValueError(f"timestamp must look like YYYY-MM-DD HH:MM:SS, got {value!r}") from None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime(Config.TIMESTAMP_FORMAT)


def _clip(value, limit: int):
    if isinstance(value, str):
        return value.strip()[:limit]
    return value


def _coerce_timestamp(value):
    if isinstance(value, str):
        return parse_timestamp(value) if value.strip() else None
    return value


class CurrencyCreate(BaseModel):
    name: str = Field(min_length=1)
    symbol: str = Field(min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def _clip_name(cls, value):
        return _clip(value, CURRENCY_NAME_MAX)

    @field_validator("symbol", mode="before")
    @classmethod
    def _clip_symbol(cls, value):
        return _clip(value, SYMBOL_MAX)


class TaskCreate(BaseModel):
    description: str = Field(min_length=1)
    currency_amount: int = Field(ge=SQLITE_INT_MIN, le=SQLITE_INT_MAX)

    @field_validator("description", mode="before")
    @classmethod
    def _clip_description(cls, value):
        return _clip(value, DESCRIPTION_MAX)


class StoreItemCreate(BaseModel):
    description: str = Field(min_length=1)
    cost: int = Field(default=0, ge=0, le=SQLITE_INT_MAX)
    stock: int = Field(default=UNLIMITED_STOCK, ge=UNLIMITED_STOCK, le=SQLITE_INT_MAX)
    category: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def _clip_description(cls, value):
        return _clip(value, DESCRIPTION_MAX)

    @field_validator("category", mode="before")
    @classmethod
    def _clip_category(cls, value):
        if value is None:
            return None
        return _clip(value, CATEGORY_MAX) or None


class EventDraft(BaseModel):
    name: str = Field(min_length=1)
    currency_id: Optional[int] = Field(default=None, gt=0, le=SQLITE_INT_MAX)
    new_currency: Optional[CurrencyCreate] = None
    is_time_limited: bool = False
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    tasks: List[TaskCreate] = Field(default_factory=list)
    items: List[StoreItemCreate] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _clip_name(cls, value):
        return _clip(value, EVENT_NAME_MAX)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_times(cls, value):
        return _coerce_timestamp(value)

    @model_validator(mode="after")
    def _check_currency_and_window(self):
        if (self.currency_id is None) == (self.new_currency is None):
            raise ValueError("choose an existing currency or describe a new one, not both")
        if self.is_time_limited:
            if self.start_time is None or self.end_time is None:
                raise ValueError("time-limited events need both start_time and end_time")
        else:
            self.start_time = None
            self.end_time = None
        return self


class Currency(BaseModel):
    id: int
    name: str
    symbol: str
    balance: int = 0


class Event(BaseModel):
    id: int
    name: str
    currency_id: int
    is_time_limited: bool
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_active: bool = True

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_times(cls, value):
        return _coerce_timestamp(value)


class Task(BaseModel):
    event_id: int
    task_id: int
    description: str
    currency_amount: int
    is_completed: bool = False


class StoreItem(BaseModel):
    event_id: int
    item_id: int
    description: str
    cost: int
    stock: int = UNLIMITED_STOCK
    category: Optional[str] = None

    @property
    def unlimited(self) -> bool:
        return self.stock == UNLIMITED_STOCK


class EventWithBalance(BaseModel):
    event: Event
    currency: Currency


class EventCreated(BaseModel):
    event_id: int
    currency_id: int
    currency_created: bool = False
    task_ids: List[int] = Field(default_factory=list)
    item_ids: List[int] = Field(default_factory=list)


class CompletionStatus(str, Enum):
    completed = "completed"
    nothing_to_do = "nothing_to_do"


class TaskCompletion(BaseModel):
    status: CompletionStatus
    event_id: int
    task_id: Optional[int] = None
    amount: int = 0
    currency: Optional[Currency] = None


class Purchase(BaseModel):
    event_id: int
    item_id: int
    cost: int
    stock_before: int
    stock_after: int
    currency: Currency
