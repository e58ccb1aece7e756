from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
DB_PATH = DATA_DIR / "reward_system.db"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _env_flag(name: str, default: str = "") -> bool:
    return os.environ.get(name, default).lower() in {"1", "true", "yes"}


class Config:
    DB_PATH = os.environ.get("REWARDLAB_DB", str(DB_PATH))
    ATOMIC_WORKFLOWS = _env_flag("REWARDLAB_ATOMIC")
    DEBUG = _env_flag("REWARDLAB_DEBUG") or _env_flag("SQLSTRATUM_DEBUG")
    SQL_LOG = os.environ.get("REWARDLAB_SQL_LOG") or None
    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
