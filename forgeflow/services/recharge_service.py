"""
Recharge Service — mini-game reports, the daily reset, and milestones.

Mini-games don't get their own protocol: they report an (xp, burnout delta)
pair and it goes through the same account entry points everything else uses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from forgeflow.data.repository import Repository
from forgeflow.engine.clock import Clock
from forgeflow.engine.progression import ProgressionAccount, XPAward
from forgeflow.engine.quests import Task
from forgeflow.services.storage import saving

logger = logging.getLogger(__name__)


@dataclass
class Milestone:
    key: str
    title: str
    category: str
    condition: Callable[[ProgressionAccount, Sequence[Task]], bool]


def _completed(tasks: Sequence[Task]) -> int:
    return sum(1 for t in tasks if t.completed)


def _open(tasks: Sequence[Task]) -> int:
    return sum(1 for t in tasks if not t.completed)


MILESTONES: List[Milestone] = [
    # Shipping
    Milestone("initial_commit", "Initial Commit", "shipping", lambda a, t: _completed(t) >= 1),
    Milestone("merge_master", "Merge Master", "shipping", lambda a, t: _completed(t) >= 5),
    Milestone("clean_coder", "Clean Coder", "shipping", lambda a, t: _completed(t) >= 10),
    Milestone("deployment_pipeline", "Deployment Pipeline", "shipping", lambda a, t: _completed(t) >= 25),
    Milestone("production_ready", "Production Ready", "shipping", lambda a, t: _completed(t) >= 50),
    Milestone("open_source_legend", "Open Source Legend", "shipping", lambda a, t: _completed(t) >= 100),
    # Focus (minutes counted since the last daily reset)
    Milestone("first_boot", "First Boot", "focus", lambda a, t: a.total_focus_minutes > 0),
    Milestone("deep_work", "Deep Work", "focus", lambda a, t: a.total_focus_minutes >= 60),
    Milestone("pomodoro_pro", "Pomodoro Pro", "focus", lambda a, t: a.total_focus_minutes >= 200),
    Milestone("flow_state", "Flow State", "focus", lambda a, t: a.total_focus_minutes >= 500),
    Milestone("hyperfocus", "Hyperfocus", "focus", lambda a, t: a.total_focus_minutes >= 1000),
    Milestone("ten_x_engineer", "10x Engineer", "focus", lambda a, t: a.total_focus_minutes >= 5000),
    # Levels
    Milestone("junior_dev", "Junior Dev", "level", lambda a, t: a.level >= 3),
    Milestone("mid_level", "Mid-Level", "level", lambda a, t: a.level >= 5),
    Milestone("senior_architect", "Senior Architect", "level", lambda a, t: a.level >= 10),
    Milestone("staff_engineer", "Staff Engineer", "level", lambda a, t: a.level >= 20),
    Milestone("cto", "CTO", "level", lambda a, t: a.level >= 50),
    # Streaks
    Milestone("uptime_streak", "Uptime Streak", "streak", lambda a, t: a.streak_days >= 3),
    Milestone("weekly_sprint", "Weekly Sprint", "streak", lambda a, t: a.streak_days >= 7),
    Milestone("monthly_marathon", "Monthly Marathon", "streak", lambda a, t: a.streak_days >= 30),
    Milestone("hundred_day_commit", "100 Day Commit", "streak", lambda a, t: a.streak_days >= 100),
    # Currency
    Milestone("seed_round", "Seed Round", "currency", lambda a, t: a.currency >= 500),
    Milestone("series_a", "Series A", "currency", lambda a, t: a.currency >= 2000),
    Milestone("unicorn", "Unicorn", "currency", lambda a, t: a.currency >= 10000),
    # Wellbeing / misc
    Milestone("balanced_dev", "Balanced Dev", "special",
              lambda a, t: a.burnout < 0.2 and a.total_focus_minutes > 30),
    Milestone("multitasker", "Multitasker", "special", lambda a, t: _open(t) >= 5),
]


class RechargeService:
    """Everything that restores (or drains) the account outside of task work."""

    def __init__(self, repo: Repository, account: ProgressionAccount, clock: Clock) -> None:
        self.repo = repo
        self.account = account
        self.clock = clock

    def report_minigame(self, xp_earned: int, burnout_delta: float) -> Optional[XPAward]:
        """
        Apply a mini-game result. A negative delta is recovery, a positive
        one is strain (losing a round). Recovery lands before the XP award.
        """
        if burnout_delta < 0:
            self.account.recover_burnout(-burnout_delta)
        elif burnout_delta > 0:
            self.account.add_burnout(burnout_delta)

        award = None
        if xp_earned > 0:
            award = self.account.award_xp(xp_earned, self.clock.now())

        logger.info(
            "Mini-game reported: xp=%d, burnout %+.2f -> %.2f",
            xp_earned, burnout_delta, self.account.burnout,
        )
        with saving("report_minigame"):
            self.repo.save_account(self.account)
        return award

    def run_daily_maintenance(self) -> bool:
        """Run the midnight reset if the day has rolled over. Call on launch."""
        if not self.account.check_daily_reset(self.clock.now()):
            return False
        with saving("daily_reset"):
            self.repo.save_account(self.account)
        return True

    def unlocked_milestones(self, tasks: Optional[Sequence[Task]] = None) -> List[Milestone]:
        if tasks is None:
            tasks = self.repo.list_tasks()
        return [m for m in MILESTONES if m.condition(self.account, tasks)]


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   The "recharge" side of the app: mini-games feed results in, the daily
#   reset clears the previous day's burnout, and milestones are evaluated
#   from the account and the task list.
#
# Key pieces:
#   - report_minigame(): one entry point for every game. Games decide their
#     own numbers; the engine just applies them with the usual clamping.
#   - MILESTONES: a declarative table of (key, title, condition). Adding a
#     milestone is one line, and nothing about them is stored; they are
#     recomputed on read.
#
# Interviewer-friendly talking points:
#   1. No separate mini-game protocol keeps the engine surface small.
#   2. Milestones are derived state, like task escalation. There is no
#      "unlocked_at" to keep in sync.
