from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from pydantic import BaseModel

from rewardlab import queries
from rewardlab.config import TEMPLATES_DIR
from rewardlab.db import Store
from rewardlab.models import (
    Currency,
    Event,
    EventWithBalance,
    StoreItem,
    Task,
    format_timestamp,
)

logger = logging.getLogger(__name__)


def _cell(value, width: int) -> str:
    text = "" if value is None else str(value)
    return text[:width].ljust(width)


def _ts(value: Optional[datetime]) -> str:
    return format_timestamp(value) or "N/A"


templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)
templates.filters["cell"] = _cell
templates.filters["ts"] = _ts


def render(template_name: str, **context) -> str:
    return templates.get_template(template_name).render(**context)


class EventOverview(BaseModel):
    event: Event
    currency: Currency
    tasks: List[Task]


def render_currencies(currencies: Iterable[Currency]) -> str:
    return render("currencies.txt", currencies=list(currencies))


def render_events(events: Iterable[Event]) -> str:
    return render("events.txt", events=list(events))


def render_tasks(tasks: Iterable[Task]) -> str:
    return render("tasks.txt", tasks=list(tasks))


def render_purchase_events(rows: Iterable[EventWithBalance]) -> str:
    return render("purchase_events.txt", rows=list(rows))


def render_store_items(items: Iterable[StoreItem], currency: Currency) -> str:
    return render("store_items.txt", items=list(items), currency=currency)


def build_overview(store: Store) -> list[EventOverview]:
    currencies = {c.id: c for c in queries.list_currencies(store)}
    entries = []
    for event in queries.list_active_events(store):
        currency = currencies.get(event.currency_id)
        if currency is None:
            logger.warning("event %s references missing currency %s", event.id, event.currency_id)
            continue
        entries.append(
            EventOverview(event=event, currency=currency, tasks=queries.list_all_tasks(store, event.id))
        )
    return entries


def render_overview(store: Store) -> str:
    return render("overview.txt", entries=build_overview(store))


def render_stats(store: Store) -> str:
    return render_currencies(queries.list_currencies(store))
