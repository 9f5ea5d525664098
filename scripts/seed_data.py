"""
Seed Data Generator — creates realistic fake data for development and testing.

Run: python scripts/seed_data.py
"""

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from forgeflow.data.database import Database
from forgeflow.data.repository import Repository
from forgeflow.engine.quests import Difficulty, Task


def seed(num_sessions: int = 30) -> None:
    db = Database()
    db.connect()
    repo = Repository(db.conn)
    now = datetime.now()
    repo.get_or_create_account(now)

    # ── Tasks & subtasks ────────────────────────────────────────────────
    quests = {
        "Refactor auth module": [("Extract token service", Difficulty.COMPLEX),
                                 ("Delete legacy session code", Difficulty.LEGACY)],
        "Write API docs": [("Endpoints", Difficulty.ROUTINE), ("Examples", Difficulty.ROUTINE)],
        "Fix flaky CI": [],
        "Migrate to new ORM": [("Models", Difficulty.COMPLEX), ("Queries", Difficulty.LEGACY),
                               ("Tests", Difficulty.COMPLEX)],
    }
    titles = list(quests)
    for i, (title, subs) in enumerate(quests.items()):
        task = Task(title=title, created_at=now - timedelta(days=i * 2))
        for sub_title, difficulty in subs:
            task.add_subtask(sub_title, difficulty)
        repo.save_task(task)

    # ── Work sessions ───────────────────────────────────────────────────
    base_date = now - timedelta(days=14)
    for i in range(num_sessions):
        day = base_date + timedelta(days=i * 14 / num_sessions)
        recorded = day.replace(hour=random.randint(8, 20), minute=random.randint(0, 59))
        minutes = max(5.0, random.gauss(30, 10))
        repo.add_work_session(random.choice(titles + ["Focus Cycle"]),
                              timedelta(minutes=minutes), recorded)

    print(f"Seeded {len(quests)} tasks and {num_sessions} work sessions into {db.db_path}")
    db.close()


if __name__ == "__main__":
    seed()
