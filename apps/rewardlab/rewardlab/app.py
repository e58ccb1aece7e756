from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from rewardlab import presentation, queries, workflows
from rewardlab.config import Config
from rewardlab.db import Store, open_store
from rewardlab.errors import InputError, NotFoundError, PartialEventError, RewardError
from rewardlab.models import (
    CompletionStatus,
    CurrencyCreate,
    EventDraft,
    StoreItemCreate,
    TaskCreate,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

MENU = """
--- Reward System Menu ---
1. Add an Event
2. Mark a Task as Done
3. Buy an Item from the Store
4. List All Events and Their Tasks
5. List My Stats
6. Exit"""

EXIT_CHOICE = 6


def configure_logging(debug: bool = False, sql_log: Optional[str] = None) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    if not (debug or sql_log):
        return
    # the runner only logs statements when SQLSTRATUM_DEBUG is set
    os.environ.setdefault("SQLSTRATUM_DEBUG", "1")
    sql_logger = logging.getLogger("sqlstratum")
    sql_logger.setLevel(logging.DEBUG)
    if sql_log:
        if not any(
            isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", "") == os.path.abspath(sql_log)
            for h in sql_logger.handlers
        ):
            file_handler = logging.FileHandler(sql_log)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s: %(message)s"))
            sql_logger.addHandler(file_handler)


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(err["msg"] for err in exc.errors())


class RewardApp:
    def __init__(
        self,
        store: Store,
        atomic: Optional[bool] = None,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ) -> None:
        self.store = store
        self.atomic = Config.ATOMIC_WORKFLOWS if atomic is None else atomic
        self.input = input_fn
        self.output = output
        self.actions = {
            1: self.add_event,
            2: self.mark_task_done,
            3: self.buy_item,
            4: self.list_events_and_tasks,
            5: self.list_stats,
        }

    # Prompts

    def ask_text(self, prompt: str, required: bool = True) -> str:
        while True:
            value = self.input(prompt).strip()
            if value or not required:
                return value
            self.output("A value is required.")

    def ask_int(self, prompt: str, minimum: Optional[int] = None) -> int:
        while True:
            raw = self.input(prompt).strip()
            try:
                value = int(raw)
            except ValueError:
                self.output(f"{raw!r} is not a number.")
                continue
            if minimum is not None and value < minimum:
                self.output(f"Enter a number of at least {minimum}.")
                continue
            return value

    def ask_timestamp(self, prompt: str):
        while True:
            try:
                return parse_timestamp(self.input(prompt))
            except ValueError as exc:
                self.output(str(exc))

    def ask_new_currency(self) -> CurrencyCreate:
        while True:
            name = self.ask_text("Enter currency name: ")
            symbol = self.ask_text("Enter currency symbol: ")
            try:
                return CurrencyCreate(name=name, symbol=symbol)
            except ValidationError as exc:
                self.output(_validation_message(exc))

    def ask_task(self) -> TaskCreate:
        while True:
            description = self.ask_text("Enter task description: ")
            amount = self.ask_int("Enter the currency amount rewarded upon completion: ")
            try:
                return TaskCreate(description=description, currency_amount=amount)
            except ValidationError as exc:
                self.output(_validation_message(exc))

    def ask_item(self) -> StoreItemCreate:
        while True:
            description = self.ask_text("Enter item description: ")
            cost = self.ask_int("Enter cost of the item: ")
            stock = self.ask_int("Enter item stock(-1 for infinity): ")
            category = self.ask_text("Enter category: ", required=False)
            try:
                return StoreItemCreate(description=description, cost=cost, stock=stock, category=category)
            except ValidationError as exc:
                self.output(_validation_message(exc))

    # Menu actions

    def add_event(self) -> None:
        name = self.ask_text("Enter event name: ")
        currencies = queries.list_currencies(self.store)
        payload = {"name": name}

        if not currencies:
            self.output("There are no currencies available, make one.")
            payload["new_currency"] = self.ask_new_currency()
        else:
            self.output("Existing currencies")
            self.output(presentation.render_currencies(currencies))
            currency_id = self.ask_int("Choose an existing currency or create a new one(0): ", minimum=0)
            if currency_id == 0:
                payload["new_currency"] = self.ask_new_currency()
            elif currency_id not in {c.id for c in currencies}:
                raise NotFoundError("currency", currency_id)
            else:
                payload["currency_id"] = currency_id

        is_time_limited = self.ask_int("Is this event time-limited? (1 for Yes, 0 for No): ", minimum=0) != 0
        payload["is_time_limited"] = is_time_limited
        if is_time_limited:
            payload["start_time"] = self.ask_timestamp("Enter start time (YYYY-MM-DD HH:MM:SS): ")
            payload["end_time"] = self.ask_timestamp("Enter end time (YYYY-MM-DD HH:MM:SS): ")

        num_tasks = self.ask_int(f"Enter the number of tasks for Event {name}: ", minimum=0)
        payload["tasks"] = [self.ask_task() for _ in range(num_tasks)]
        num_items = self.ask_int("Enter the number of store items associated with this event: ", minimum=0)
        payload["items"] = [self.ask_item() for _ in range(num_items)]

        try:
            draft = EventDraft.model_validate(payload)
        except ValidationError as exc:
            raise InputError(_validation_message(exc)) from exc

        try:
            created = workflows.create_event(self.store, draft, atomic=self.atomic)
        except PartialEventError as exc:
            self.output(f"Event added with ID: {exc.event_id}, but not all of its tasks and items were saved.")
            raise

        if created.currency_created:
            self.output(f"New currency created with ID: {created.currency_id}")
        self.output("Event added successfully")
        for task_id in created.task_ids:
            self.output(f"Task {task_id} added successfully")
        for item_id in created.item_ids:
            self.output(f"Item {item_id} added successfully")

    def mark_task_done(self) -> None:
        events = queries.list_active_events(self.store)
        if not events:
            self.output("There are no active events.")
            return
        self.output(presentation.render_events(events))
        event_id = self.ask_int("Choose which event the task belongs to: ")
        if event_id not in {e.id for e in events}:
            raise NotFoundError("event", event_id)

        pending = queries.list_incomplete_tasks(self.store, event_id)
        if not pending:
            self.output("No tasks left.")
            return
        self.output(presentation.render_tasks(pending))
        task_id = self.ask_int("Choose completed task: ")

        result = workflows.complete_task(self.store, event_id, task_id, atomic=self.atomic)
        if result.status is CompletionStatus.nothing_to_do:
            self.output("No tasks left.")
            return
        self.output(f"Task {result.task_id} successfully completed. Keep it up!")
        self.output(
            f"Currency {result.currency.id} has increased by {result.amount} "
            f"{result.currency.symbol}s. Happy spending!"
        )
        self.output("Current Balance")
        self.output(presentation.render_stats(self.store))

    def buy_item(self) -> None:
        rows = workflows.events_with_balances(self.store)
        if not rows:
            self.output("There are no active events.")
            return
        self.output(presentation.render_purchase_events(rows))
        event_id = self.ask_int("Enter event associated with the store: ")
        chosen = next((row for row in rows if row.event.id == event_id), None)
        if chosen is None:
            raise NotFoundError("event", event_id)

        items = queries.list_store_items(self.store, event_id)
        self.output(presentation.render_store_items(items, chosen.currency))
        item_id = self.ask_int("Enter item to buy: ")

        workflows.purchase_item(self.store, event_id, item_id, atomic=self.atomic)
        self.output("Current balance")
        self.output(presentation.render_stats(self.store))

    def list_events_and_tasks(self) -> None:
        self.output(presentation.render_overview(self.store))

    def list_stats(self) -> None:
        self.output("Current balance")
        self.output(presentation.render_stats(self.store))

    def run(self) -> None:
        while True:
            self.output(MENU)
            raw = self.input("Enter your choice: ").strip()
            try:
                choice = int(raw)
            except ValueError:
                choice = None
            if choice == EXIT_CHOICE:
                self.output("Exiting...")
                return
            action = self.actions.get(choice)
            if action is None:
                self.output("Invalid choice. Please try again.")
                continue
            try:
                action()
            except RewardError as exc:
                logger.warning("menu action %s failed: %s", choice, exc)
                self.output(f"Error: {exc.message}")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Personal reward tracker")
    parser.add_argument("--db", default=None, help="Path to the SQLite database")
    parser.add_argument("--debug", action="store_true", help="Enable debug and SQL logging")
    parser.add_argument("--atomic", action="store_true", help="Run each workflow in a single transaction")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(debug=args.debug or Config.DEBUG, sql_log=Config.SQL_LOG)
    db_path = args.db or Config.DB_PATH
    atomic = args.atomic or Config.ATOMIC_WORKFLOWS

    fresh = db_path != ":memory:" and not Path(db_path).exists()
    if fresh:
        print("Configuration data does not exist...")
    try:
        with open_store(db_path) as store:
            if fresh:
                print("Tables created successfully.")
            try:
                RewardApp(store, atomic=atomic).run()
            except (KeyboardInterrupt, EOFError):
                print("\nExiting...")
    except RewardError as exc:
        logger.error("cannot open store at %s: %s", db_path, exc)
        print(f"Cannot open database: {exc.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
