"""Tests for the interactive menu, driven by scripted input."""

from pathlib import Path

import pytest

from rewardlab import app as app_module
from rewardlab import queries
from rewardlab.app import RewardApp, main


class Script:
    """Feeds canned answers to prompts and records everything printed."""

    def __init__(self, *answers: str) -> None:
        self.answers = list(answers)
        self.prompts: list[str] = []
        self.printed: list[str] = []

    def input(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    def output(self, text: str) -> None:
        self.printed.append(text)

    @property
    def text(self) -> str:
        return "\n".join(self.printed)


def _app(store, script: Script, atomic: bool = False) -> RewardApp:
    return RewardApp(store, atomic=atomic, input_fn=script.input, output=script.output)


class TestMenu:
    """Menu loop dispatch and error reporting."""

    def test_invalid_choices_are_reprompted(self, store):
        script = Script("x", "9", "", "6")
        _app(store, script).run()
        assert script.printed.count("Invalid choice. Please try again.") == 3
        assert script.printed[-1] == "Exiting..."

    def test_list_stats(self, store, gems):
        script = Script("5", "6")
        _app(store, script).run()
        assert "Current balance" in script.printed
        assert "Gems" in script.text

    def test_list_events_and_tasks(self, store, sprint):
        script = Script("4", "6")
        _app(store, script).run()
        assert "Write tests" in script.text

    def test_domain_error_returns_to_menu(self, store, sprint):
        script = Script("3", "999", "6")
        _app(store, script).run()
        assert "Error: event 999 not found" in script.printed
        assert script.printed[-1] == "Exiting..."

    def test_end_of_input_propagates(self, store):
        script = Script()
        with pytest.raises(EOFError):
            _app(store, script).run()


class TestAddEvent:
    """Menu option 1."""

    def test_first_event_forces_new_currency(self, store):
        script = Script(
            "Sprint",
            "Gems", "G",
            "0",
            "1", "Write tests", "10",
            "1", "Extra break", "5", "2", "Boost",
        )
        _app(store, script).add_event()

        assert "There are no currencies available, make one." in script.printed
        assert "New currency created with ID: 1" in script.printed
        assert "Task 1 added successfully" in script.printed
        assert "Item 1 added successfully" in script.printed
        [event] = queries.list_active_events(store)
        assert event.name == "Sprint"
        assert queries.get_currency(store, event.currency_id).name == "Gems"
        assert queries.get_store_item(store, event.id, 1).stock == 2

    def test_existing_currency_and_time_window(self, store, gems):
        script = Script(
            "Weekend",
            str(gems),
            "1", "2024-06-01 09:00:00", "2024-06-02 18:00:00",
            "0",
            "0",
        )
        _app(store, script).add_event()

        [event] = queries.list_active_events(store)
        assert event.currency_id == gems
        assert event.is_time_limited
        assert event.end_time.hour == 18
        assert "New currency created with ID: 1" not in script.printed

    def test_sentinel_zero_creates_currency(self, store, gems):
        script = Script("Reading", "0", "Pages", "P", "0", "0", "0")
        _app(store, script).add_event()
        assert [c.name for c in queries.list_currencies(store)] == ["Gems", "Pages"]

    def test_bad_numbers_and_timestamps_are_reprompted(self, store, gems):
        script = Script(
            "Weekend",
            "abc", str(gems),
            "1", "soon", "2024-06-01 09:00:00", "2024-06-02 18:00:00",
            "-1", "0",
            "0",
        )
        _app(store, script).add_event()
        assert "'abc' is not a number." in script.printed
        assert "Enter a number of at least 0." in script.printed
        assert len(queries.list_active_events(store)) == 1

    def test_invalid_item_is_asked_again(self, store, gems):
        script = Script(
            "Shop", str(gems), "0", "0",
            "1",
            "Broken", "-5", "1", "",
            "Fixed", "5", "1", "",
        )
        _app(store, script).add_event()
        [item] = queries.list_store_items(store, 1)
        assert item.description == "Fixed"
        assert item.category is None

    def test_oversized_reward_is_asked_again(self, store, gems):
        script = Script("1", "Ev", str(gems), "0", "1", "task", "9" * 25, "task", "7", "0", "6")
        _app(store, script).run()

        assert any("less than or equal to" in line for line in script.printed)
        assert script.printed[-1] == "Exiting..."
        [event] = queries.list_active_events(store)
        assert [t.currency_amount for t in queries.list_all_tasks(store, event.id)] == [7]

    def test_unknown_currency_is_reported(self, store, gems):
        script = Script("1", "Sprint", "42", "6")
        _app(store, script).run()
        assert "Error: currency 42 not found" in script.printed
        assert queries.list_active_events(store) == []


class TestMarkTaskDone:
    """Menu option 2."""

    def test_completes_and_reports_balance(self, store, gems, sprint):
        script = Script(str(sprint), "1")
        _app(store, script).mark_task_done()
        assert "Task 1 successfully completed. Keep it up!" in script.printed
        assert f"Currency {gems} has increased by 10 Gs. Happy spending!" in script.printed
        assert queries.get_currency(store, gems).balance == 10

    def test_no_tasks_left(self, store, sprint):
        queries.mark_task_completed(store, sprint, 1)
        script = Script(str(sprint))
        _app(store, script).mark_task_done()
        assert "No tasks left." in script.printed

    def test_no_active_events(self, store):
        script = Script()
        _app(store, script).mark_task_done()
        assert script.printed == ["There are no active events."]


class TestBuyItem:
    """Menu option 3."""

    def test_buys_item(self, store, gems, sprint):
        queries.credit_balance(store, gems, 10)
        script = Script(str(sprint), "1")
        _app(store, script).buy_item()
        assert "Current balance" in script.printed
        assert queries.get_currency(store, gems).balance == 5
        assert queries.get_store_item(store, sprint, 1).stock == 1

    def test_insufficient_balance_reported_by_menu(self, store, gems, sprint):
        script = Script("3", str(sprint), "1", "6")
        _app(store, script).run()
        assert "Error: insufficient balance" in script.printed
        assert queries.get_store_item(store, sprint, 1).stock == 2


class TestMain:
    """Process entry point."""

    def test_fresh_database_is_created(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(RewardApp, "run", lambda self: None)
        db = tmp_path / "fresh.db"
        assert main(["--db", str(db)]) == 0
        out = capsys.readouterr().out
        assert "Configuration data does not exist..." in out
        assert "Tables created successfully." in out
        assert db.exists()

    def test_interrupt_exits_cleanly(self, tmp_path, monkeypatch, capsys):
        def interrupted(self):
            raise KeyboardInterrupt

        monkeypatch.setattr(RewardApp, "run", interrupted)
        assert main(["--db", str(tmp_path / "r.db")]) == 0
        assert "Exiting..." in capsys.readouterr().out

    def test_atomic_flag_reaches_app(self, tmp_path, monkeypatch):
        seen = {}

        def record(self):
            seen["atomic"] = self.atomic

        monkeypatch.setattr(RewardApp, "run", record)
        main(["--db", str(tmp_path / "r.db"), "--atomic"])
        assert seen["atomic"] is True

    def test_unopenable_database_exits_with_error(self, tmp_path, capsys):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        assert main(["--db", str(Path(blocker) / "r.db")]) == 1
        assert "Cannot open database" in capsys.readouterr().err

    def test_sql_log_handler_added_once(self, tmp_path, monkeypatch):
        import logging

        monkeypatch.setenv("SQLSTRATUM_DEBUG", "1")
        log_path = str(tmp_path / "sql.log")
        app_module.configure_logging(sql_log=log_path)
        app_module.configure_logging(sql_log=log_path)
        sql_logger = logging.getLogger("sqlstratum")
        handlers = [h for h in sql_logger.handlers if isinstance(h, logging.FileHandler)]
        try:
            assert len(handlers) == 1
        finally:
            for handler in handlers:
                sql_logger.removeHandler(handler)
                handler.close()
            sql_logger.setLevel(logging.NOTSET)
