from __future__ import annotations

import logging
from contextlib import contextmanager, nullcontext
from typing import Iterator, Optional

from rewardlab import queries
from rewardlab.config import Config
from rewardlab.db import Store
from rewardlab.errors import (
    ConstraintError,
    NotFoundError,
    PartialEventError,
    PreconditionError,
    StoreIOError,
)
from rewardlab.models import (
    CompletionStatus,
    EventCreated,
    EventDraft,
    EventWithBalance,
    Purchase,
    TaskCompletion,
)

logger = logging.getLogger(__name__)


@contextmanager
def _scope(store: Store, atomic: Optional[bool]) -> Iterator[None]:
    if atomic is None:
        atomic = Config.ATOMIC_WORKFLOWS
    with store.transaction() if atomic else nullcontext():
        yield


def create_event(store: Store, draft: EventDraft, atomic: Optional[bool] = None) -> EventCreated:
    with _scope(store, atomic):
        currency_created = False
        if draft.new_currency is not None:
            currency_id = queries.create_currency(store, draft.new_currency.name, draft.new_currency.symbol)
            currency_created = True
            logger.info("created currency %s (%s)", currency_id, draft.new_currency.name)
        else:
            currency_id = draft.currency_id

        event_id = queries.create_event(
            store,
            name=draft.name,
            currency_id=currency_id,
            is_time_limited=draft.is_time_limited,
            start_time=draft.start_time,
            end_time=draft.end_time,
        )
        logger.info("created event %s (%s)", event_id, draft.name)

        created = EventCreated(event_id=event_id, currency_id=currency_id, currency_created=currency_created)
        try:
            for task in draft.tasks:
                created.task_ids.append(
                    queries.create_task(store, event_id, task.description, task.currency_amount)
                )
            for item in draft.items:
                created.item_ids.append(
                    queries.create_store_item(
                        store,
                        event_id,
                        item.description,
                        item.cost,
                        item.stock,
                        item.category,
                    )
                )
        except (ConstraintError, StoreIOError) as exc:
            if store.in_transaction:
                raise
            logger.error(
                "event %s left partially created (%d tasks, %d items): %s",
                event_id,
                len(created.task_ids),
                len(created.item_ids),
                exc.message,
            )
            raise PartialEventError(event_id, len(created.task_ids), len(created.item_ids), exc) from exc

    return created


def complete_task(store: Store, event_id: int, task_id: int, atomic: Optional[bool] = None) -> TaskCompletion:
    event = queries.get_active_event(store, event_id)
    if event is None:
        raise NotFoundError("event", event_id)

    pending = queries.list_incomplete_tasks(store, event_id)
    if not pending:
        return TaskCompletion(status=CompletionStatus.nothing_to_do, event_id=event_id)

    task = next((t for t in pending if t.task_id == task_id), None)
    if task is None:
        raise NotFoundError("task", task_id)

    with _scope(store, atomic):
        if queries.mark_task_completed(store, event_id, task_id) == 0:
            raise NotFoundError("task", task_id)
        logger.info("task %s of event %s completed", task_id, event_id)
        queries.credit_balance(store, event.currency_id, task.currency_amount)
        logger.info("credited currency %s by %d", event.currency_id, task.currency_amount)

    return TaskCompletion(
        status=CompletionStatus.completed,
        event_id=event_id,
        task_id=task_id,
        amount=task.currency_amount,
        currency=queries.get_currency(store, event.currency_id),
    )


def events_with_balances(store: Store) -> list[EventWithBalance]:
    currencies = {c.id: c for c in queries.list_currencies(store)}
    rows = []
    for event in queries.list_active_events(store):
        currency = currencies.get(event.currency_id)
        if currency is not None:
            rows.append(EventWithBalance(event=event, currency=currency))
    return rows


def purchase_item(store: Store, event_id: int, item_id: int, atomic: Optional[bool] = None) -> Purchase:
    chosen = next((row for row in events_with_balances(store) if row.event.id == event_id), None)
    if chosen is None:
        raise NotFoundError("event", event_id)
    balance = chosen.currency.balance

    item = next((i for i in queries.list_store_items(store, event_id) if i.item_id == item_id), None)
    if item is None:
        raise NotFoundError("item", item_id)

    if item.stock == 0:
        raise PreconditionError(PreconditionError.OUT_OF_STOCK)
    if balance < item.cost:
        raise PreconditionError(PreconditionError.INSUFFICIENT_BALANCE)

    with _scope(store, atomic):
        if not item.unlimited:
            if queries.decrement_stock(store, event_id, item_id) == 0:
                raise PreconditionError(PreconditionError.OUT_OF_STOCK)
        queries.credit_balance(store, chosen.currency.id, -item.cost)
        logger.info(
            "bought item %s of event %s for %d %s",
            item_id,
            event_id,
            item.cost,
            chosen.currency.symbol,
        )

    return Purchase(
        event_id=event_id,
        item_id=item_id,
        cost=item.cost,
        stock_before=item.stock,
        stock_after=item.stock if item.unlimited else item.stock - 1,
        currency=queries.get_currency(store, chosen.currency.id),
    )
