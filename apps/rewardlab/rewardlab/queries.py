from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlstratum import (
    ASC,
    INSERT,
    MAX,
    SELECT,
    UPDATE,
    Table,
    col,
)
from sqlstratum.hydrate.pydantic import using_pydantic

from rewardlab.db import Store
from rewardlab.errors import ConstraintError
from rewardlab.models import (
    UNLIMITED_STOCK,
    Currency,
    Event,
    StoreItem,
    Task,
    format_timestamp,
)


currency = Table(
    "currency",
    col("id", int),
    col("name", str),
    col("symbol", str),
    col("balance", int),
)

events = Table(
    "events",
    col("id", int),
    col("name", str),
    col("currency_id", int),
    col("is_time_limited", bool),
    col("start_time", str),
    col("end_time", str),
    col("is_active", bool),
)

tasks = Table(
    "tasks",
    col("event_id", int),
    col("task_id", int),
    col("description", str),
    col("currency_amount", int),
    col("is_completed", bool),
)

store_items = Table(
    "store",
    col("item_id", int),
    col("description", str),
    col("cost", int),
    col("event_id", int),
    col("stock", int),
    col("category", str),
)


# Currencies

def _select_currency():
    return SELECT(
        currency.c.id.AS("id"),
        currency.c.name.AS("name"),
        currency.c.symbol.AS("symbol"),
        currency.c.balance.AS("balance"),
    ).FROM(currency)


def create_currency(store: Store, name: str, symbol: str) -> int:
    result = store.execute(INSERT(currency).VALUES(name=name, symbol=symbol, balance=0))
    return int(result.lastrowid)


def list_currencies(store: Store) -> list[Currency]:
    q = using_pydantic(
        _select_currency().ORDER_BY(ASC(currency.c.id))
    ).hydrate(Currency)
    return store.fetch_all(q)


def get_currency(store: Store, currency_id: int) -> Optional[Currency]:
    q = using_pydantic(
        _select_currency().WHERE(currency.c.id == currency_id).LIMIT(1)
    ).hydrate(Currency)
    return store.fetch_one(q)


def credit_balance(store: Store, currency_id: int, amount: int) -> int:
    with store.transaction():
        row = store.fetch_one(
            SELECT(currency.c.balance.AS("balance"))
            .FROM(currency)
            .WHERE(currency.c.id == currency_id)
        )
        if row is None:
            return 0
        balance = int(row["balance"])
        result = store.execute(
            UPDATE(currency)
            .SET(balance=balance + amount)
            .WHERE(currency.c.id == currency_id, currency.c.balance == balance)
        )
    return result.rowcount


# Events

def _select_event():
    return SELECT(
        events.c.id.AS("id"),
        events.c.name.AS("name"),
        events.c.currency_id.AS("currency_id"),
        events.c.is_time_limited.AS("is_time_limited"),
        events.c.start_time.AS("start_time"),
        events.c.end_time.AS("end_time"),
        events.c.is_active.AS("is_active"),
    ).FROM(events)


def create_event(
    store: Store,
    name: str,
    currency_id: int,
    is_time_limited: bool,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
) -> int:
    if not is_time_limited:
        start_time = end_time = None
    elif start_time is None or end_time is None:
        raise ConstraintError("time-limited events need both start_time and end_time")
    result = store.execute(
        INSERT(events).VALUES(
            name=name,
            currency_id=currency_id,
            is_time_limited=bool(is_time_limited),
            start_time=format_timestamp(start_time),
            end_time=format_timestamp(end_time),
            is_active=True,
        )
    )
    return int(result.lastrowid)


def list_active_events(store: Store) -> list[Event]:
    q = using_pydantic(
        _select_event()
        .WHERE(events.c.is_active.is_true())
        .ORDER_BY(ASC(events.c.id))
    ).hydrate(Event)
    return store.fetch_all(q)


def get_active_event(store: Store, event_id: int) -> Optional[Event]:
    q = using_pydantic(
        _select_event()
        .WHERE(events.c.id == event_id, events.c.is_active.is_true())
        .LIMIT(1)
    ).hydrate(Event)
    return store.fetch_one(q)


def set_event_active(store: Store, event_id: int, is_active: bool) -> int:
    result = store.execute(
        UPDATE(events)
        .SET(is_active=bool(is_active))
        .WHERE(events.c.id == event_id)
    )
    return result.rowcount


# Tasks

def _select_task():
    return SELECT(
        tasks.c.event_id.AS("event_id"),
        tasks.c.task_id.AS("task_id"),
        tasks.c.description.AS("description"),
        tasks.c.currency_amount.AS("currency_amount"),
        tasks.c.is_completed.AS("is_completed"),
    ).FROM(tasks)


def next_task_id(store: Store, event_id: int) -> int:
    row = store.fetch_one(
        SELECT(MAX(tasks.c.task_id).AS("n"))
        .FROM(tasks)
        .WHERE(tasks.c.event_id == event_id)
    )
    if not row:
        return 1
    return int(row["n"] or 0) + 1


def create_task(
    store: Store,
    event_id: int,
    description: str,
    amount: int,
    task_id: Optional[int] = None,
) -> int:
    with store.transaction():
        if task_id is None:
            task_id = next_task_id(store, event_id)
        elif task_id <= 0:
            raise ConstraintError(f"task id must be positive, got {task_id}")
        store.execute(
            INSERT(tasks).VALUES(
                event_id=event_id,
                task_id=task_id,
                description=description,
                currency_amount=amount,
                is_completed=False,
            )
        )
    return task_id


def list_incomplete_tasks(store: Store, event_id: int) -> list[Task]:
    q = using_pydantic(
        _select_task()
        .WHERE(tasks.c.event_id == event_id, tasks.c.is_completed.is_false())
        .ORDER_BY(ASC(tasks.c.task_id))
    ).hydrate(Task)
    return store.fetch_all(q)


def list_all_tasks(store: Store, event_id: int) -> list[Task]:
    q = using_pydantic(
        _select_task()
        .WHERE(tasks.c.event_id == event_id)
        .ORDER_BY(ASC(tasks.c.task_id))
    ).hydrate(Task)
    return store.fetch_all(q)


def mark_task_completed(store: Store, event_id: int, task_id: int) -> int:
    result = store.execute(
        UPDATE(tasks)
        .SET(is_completed=True)
        .WHERE(
            tasks.c.event_id == event_id,
            tasks.c.task_id == task_id,
            tasks.c.is_completed.is_false(),
        )
    )
    return result.rowcount


# Store items

def _select_item():
    return SELECT(
        store_items.c.event_id.AS("event_id"),
        store_items.c.item_id.AS("item_id"),
        store_items.c.description.AS("description"),
        store_items.c.cost.AS("cost"),
        store_items.c.stock.AS("stock"),
        store_items.c.category.AS("category"),
    ).FROM(store_items)


def next_item_id(store: Store, event_id: int) -> int:
    row = store.fetch_one(
        SELECT(MAX(store_items.c.item_id).AS("n"))
        .FROM(store_items)
        .WHERE(store_items.c.event_id == event_id)
    )
    if not row:
        return 1
    return int(row["n"] or 0) + 1


def create_store_item(
    store: Store,
    event_id: int,
    description: str,
    cost: int,
    stock: int = UNLIMITED_STOCK,
    category: Optional[str] = None,
    item_id: Optional[int] = None,
) -> int:
    with store.transaction():
        if item_id is None:
            item_id = next_item_id(store, event_id)
        elif item_id <= 0:
            raise ConstraintError(f"item id must be positive, got {item_id}")
        store.execute(
            INSERT(store_items).VALUES(
                event_id=event_id,
                item_id=item_id,
                description=description,
                cost=cost,
                stock=stock,
                category=category,
            )
        )
    return item_id


def list_store_items(store: Store, event_id: int) -> list[StoreItem]:
    q = using_pydantic(
        _select_item()
        .WHERE(store_items.c.event_id == event_id)
        .ORDER_BY(ASC(store_items.c.item_id))
    ).hydrate(StoreItem)
    return store.fetch_all(q)


def get_store_item(store: Store, event_id: int, item_id: int) -> Optional[StoreItem]:
    q = using_pydantic(
        _select_item()
        .WHERE(store_items.c.event_id == event_id, store_items.c.item_id == item_id)
        .LIMIT(1)
    ).hydrate(StoreItem)
    return store.fetch_one(q)


def decrement_stock(store: Store, event_id: int, item_id: int) -> int:
    with store.transaction():
        row = store.fetch_one(
            SELECT(store_items.c.stock.AS("stock"))
            .FROM(store_items)
            .WHERE(store_items.c.event_id == event_id, store_items.c.item_id == item_id)
        )
        if row is None:
            return 0
        stock = int(row["stock"])
        if stock == UNLIMITED_STOCK or stock <= 0:
            return 0
        result = store.execute(
            UPDATE(store_items)
            .SET(stock=stock - 1)
            .WHERE(
                store_items.c.event_id == event_id,
                store_items.c.item_id == item_id,
                store_items.c.stock == stock,
            )
        )
    return result.rowcount
