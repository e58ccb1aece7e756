from __future__ import annotations

SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS currency (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  symbol TEXT NOT NULL,
  balance INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS events (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  currency_id INTEGER NOT NULL,
  is_time_limited BOOLEAN NOT NULL,
  start_time TEXT,
  end_time TEXT,
  is_active BOOLEAN NOT NULL DEFAULT 1,
  FOREIGN KEY(currency_id) REFERENCES currency(id)
);

CREATE TABLE IF NOT EXISTS tasks (
  event_id INTEGER NOT NULL,
  task_id INTEGER NOT NULL,
  description TEXT NOT NULL,
  currency_amount INTEGER NOT NULL,
  is_completed BOOLEAN NOT NULL DEFAULT 0,
  PRIMARY KEY(event_id, task_id),
  FOREIGN KEY(event_id) REFERENCES events(id)
);

CREATE TABLE IF NOT EXISTS store (
  item_id INTEGER NOT NULL,
  description TEXT NOT NULL,
  cost INTEGER NOT NULL DEFAULT 0,
  event_id INTEGER NOT NULL,
  stock INTEGER NOT NULL DEFAULT -1 CHECK (stock >= -1),
  category TEXT,
  PRIMARY KEY(event_id, item_id),
  FOREIGN KEY(event_id) REFERENCES events(id)
);

CREATE INDEX IF NOT EXISTS idx_events_is_active ON events(is_active);
CREATE INDEX IF NOT EXISTS idx_tasks_is_completed ON tasks(event_id, is_completed);
"""
