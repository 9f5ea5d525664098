"""
Tasks (quests) and their subtasks — hierarchical work items with their own
stopwatch-style timers and age-based escalation.

A Task owns its Subtasks by value: dropping the Task drops them too. Nothing
here talks to the ProgressionAccount; callers decide what to award.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

ESCALATION_AGE = timedelta(days=3)
COMPLETION_BONUS = 50
ESCALATED_COMPLETION_BONUS = 100


class Difficulty(Enum):
    """Subtask tiers."""
    ROUTINE = "Routine"
    COMPLEX = "Complex"
    LEGACY = "Legacy"

    @property
    def xp_reward(self) -> int:
        return {Difficulty.ROUTINE: 10, Difficulty.COMPLEX: 25, Difficulty.LEGACY: 50}[self]

    @property
    def burnout_impact(self) -> float:
        # Display metadata only; actual strain comes from award_xp().
        return {Difficulty.ROUTINE: 0.03, Difficulty.COMPLEX: 0.07, Difficulty.LEGACY: 0.15}[self]


@dataclass
class TimedWork:
    """Shared timer accounting for anything the user can clock in on."""
    elapsed_time: timedelta = field(default_factory=timedelta)
    active_since: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.active_since is not None

    def start_timer(self, now: datetime) -> bool:
        """Start the clock. Returns False (no-op) if it is already running."""
        if self.active_since is not None:
            return False
        self.active_since = now
        return True

    def stop_timer(self, now: datetime) -> timedelta:
        """Stop the clock and bank the span. Returns zero if it wasn't running."""
        if self.active_since is None:
            return timedelta(0)
        span = max(timedelta(0), now - self.active_since)
        self.elapsed_time += span
        self.active_since = None
        return span

    def current_elapsed(self, now: datetime) -> timedelta:
        """Banked time plus the running span, if any."""
        if self.active_since is None:
            return self.elapsed_time
        return self.elapsed_time + max(timedelta(0), now - self.active_since)


@dataclass
class Subtask(TimedWork):
    id: Optional[int] = None
    title: str = ""
    difficulty: Difficulty = Difficulty.ROUTINE
    completed: bool = False

    @property
    def xp_reward(self) -> int:
        return self.difficulty.xp_reward

    def toggle_completed(self) -> bool:
        self.completed = not self.completed
        return self.completed


@dataclass
class Task(TimedWork):
    id: Optional[int] = None
    title: str = ""
    notes: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    completed: bool = False
    subtasks: List[Subtask] = field(default_factory=list)

    # ── Mutations ───────────────────────────────────────────────────────────

    def add_subtask(self, title: str, difficulty: Difficulty = Difficulty.ROUTINE) -> Subtask:
        sub = Subtask(title=title, difficulty=difficulty)
        self.subtasks.append(sub)
        return sub

    def remove_subtask(self, sub: Subtask) -> None:
        self.subtasks = [s for s in self.subtasks if s is not sub]

    def complete(self, now: datetime) -> timedelta:
        """
        Mark done, cascading to every subtask. A running timer is stopped
        first; returns the span that stop banked (zero if none).
        """
        span = self.stop_timer(now)
        for sub in self.subtasks:
            sub.stop_timer(now)
            sub.completed = True
        self.completed = True
        logger.debug("Task %r completed (%d subtasks)", self.title, len(self.subtasks))
        return span

    def reopen(self) -> None:
        self.completed = False

    # ── Derived values ──────────────────────────────────────────────────────

    def is_escalated(self, now: datetime) -> bool:
        """Boss / technical-debt status: open and older than three days."""
        return not self.completed and (now - self.created_at) > ESCALATION_AGE

    @property
    def progress(self) -> float:
        if not self.subtasks:
            return 1.0 if self.completed else 0.0
        done = sum(1 for s in self.subtasks if s.completed)
        return done / len(self.subtasks)

    @property
    def all_subtasks_completed(self) -> bool:
        return bool(self.subtasks) and all(s.completed for s in self.subtasks)

    def completion_bonus(self, now: datetime) -> int:
        return ESCALATED_COMPLETION_BONUS if self.is_escalated(now) else COMPLETION_BONUS

    def total_xp_reward(self, now: datetime) -> int:
        return sum(s.xp_reward for s in self.subtasks) + self.completion_bonus(now)

    def total_elapsed_time(self, now: datetime) -> timedelta:
        total = self.current_elapsed(now)
        for sub in self.subtasks:
            total += sub.current_elapsed(now)
        return total


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Models the to-do side of the app: a Task with optional Subtasks, each
#   with a tier (Routine / Complex / Legacy) and a start/stop timer.
#
# Key pieces:
#   - TimedWork: the timer accounting shared by Task and Subtask. Starting a
#     running timer or stopping a stopped one is a harmless no-op.
#   - is_escalated(): a pure "how old is it now?" check. There is no stored
#     "became a boss" state, so nothing has to run in the background.
#   - complete(): flushes the running timer and cascades to subtasks.
#
# Interviewer-friendly talking points:
#   1. Strict '>' on the three-day boundary: exactly 72h old is not a boss.
#   2. Timers are per-entity. Two tasks could run at once; the UI simply
#      never offers that.
#   3. Ownership by value: Task.subtasks is a plain list, so deleting a task
#      can't leave orphans behind in memory. The repository mirrors this
#      with ON DELETE CASCADE.
