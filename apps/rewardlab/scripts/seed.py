from __future__ import annotations

import argparse
import random
from datetime import datetime, timedelta
from pathlib import Path

from faker import Faker

from rewardlab import queries
from rewardlab.config import Config
from rewardlab.db import open_store
from rewardlab.models import UNLIMITED_STOCK

CURRENCY_SYMBOLS = ["G", "XP", "C", "P", "T", "S"]
CATEGORIES = ["Boost", "Treat", "Leisure", "Gear", "Break"]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed RewardLab data")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--db", default=Config.DB_PATH, help="Database path")
    parser.add_argument("--currencies", type=int, default=3, help="Number of currencies")
    parser.add_argument("--events", type=int, default=10, help="Number of events")
    parser.add_argument("--max-tasks", type=int, default=8, help="Max tasks per event")
    parser.add_argument("--max-items", type=int, default=5, help="Max store items per event")
    parser.add_argument("--reset", action="store_true", help="Delete existing DB before seeding")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    random.seed(args.seed)
    faker = Faker()
    Faker.seed(args.seed)

    db_path = Path(args.db)
    if args.reset and db_path.exists():
        db_path.unlink()

    with open_store(str(db_path)) as store:
        with store.transaction():
            currency_ids = []
            for i in range(max(args.currencies, 1)):
                name = f"{faker.color_name()} {random.choice(['Gems', 'Coins', 'Points', 'Stars'])}"
                currency_ids.append(queries.create_currency(store, name, CURRENCY_SYMBOLS[i % len(CURRENCY_SYMBOLS)]))

            now = datetime.now().replace(microsecond=0)
            task_count = 0
            item_count = 0
            for _ in range(args.events):
                is_time_limited = random.random() < 0.5
                start_time = end_time = None
                if is_time_limited:
                    start_time = now + timedelta(days=random.randint(-14, 14), hours=random.randint(0, 12))
                    end_time = start_time + timedelta(days=random.randint(1, 30))

                event_id = queries.create_event(
                    store,
                    name=f"{faker.catch_phrase()} Sprint"[:99],
                    currency_id=random.choice(currency_ids),
                    is_time_limited=is_time_limited,
                    start_time=start_time,
                    end_time=end_time,
                )

                for _ in range(random.randint(0, args.max_tasks)):
                    queries.create_task(
                        store,
                        event_id,
                        faker.sentence(nb_words=6),
                        random.choice([5, 10, 15, 25, 50]),
                    )
                    task_count += 1

                for _ in range(random.randint(0, args.max_items)):
                    queries.create_store_item(
                        store,
                        event_id,
                        faker.sentence(nb_words=4),
                        cost=random.choice([5, 10, 20, 40]),
                        stock=random.choice([UNLIMITED_STOCK, 1, 3, 5]),
                        category=random.choice(CATEGORIES),
                    )
                    item_count += 1

        print("Seed complete")
        print(f"Currencies: {len(currency_ids)}")
        print(f"Events: {args.events}")
        print(f"Tasks: {task_count}")
        print(f"Store items: {item_count}")


if __name__ == "__main__":
    main()
