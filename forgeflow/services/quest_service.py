"""
Quest Service — the calls the UI makes for tasks and subtasks.

Each operation mutates the engine objects first, feeds the account, then
saves. Timer stops are logged as work sessions and counted as focus time.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, List, Optional

from forgeflow.data.repository import Repository
from forgeflow.engine.clock import Clock
from forgeflow.engine.progression import ProgressionAccount, XPAward
from forgeflow.engine.quests import COMPLETION_BONUS, Difficulty, Subtask, Task
from forgeflow.services.storage import saving

logger = logging.getLogger(__name__)


class QuestService:
    """Task/subtask lifecycle, timers and the XP they earn."""

    def __init__(self, repo: Repository, account: ProgressionAccount, clock: Clock) -> None:
        self.repo = repo
        self.account = account
        self.clock = clock

    # ── Task management ─────────────────────────────────────────────────────

    def create_task(self, title: str, notes: str = "") -> Task:
        task = Task(title=title, notes=notes, created_at=self.clock.now())
        with saving("create_task"):
            self.repo.save_task(task)
        logger.info("Task %d created: %r", task.id, title)
        return task

    def add_subtask(
        self, task: Task, title: str, difficulty: Difficulty = Difficulty.ROUTINE
    ) -> Subtask:
        sub = task.add_subtask(title, difficulty)
        with saving("add_subtask"):
            self.repo.save_task(task)
        return sub

    def remove_subtask(self, task: Task, sub: Subtask) -> None:
        task.remove_subtask(sub)
        with saving("remove_subtask"):
            self.repo.save_task(task)

    def delete_task(self, task: Task) -> None:
        """Delete a task and, with it, all of its subtasks."""
        task.subtasks = []
        if task.id is not None:
            with saving("delete_task"):
                self.repo.delete_task(task.id)

    def list_tasks(self, include_completed: bool = True) -> List[Task]:
        return self.repo.list_tasks(include_completed)

    # ── Timers ──────────────────────────────────────────────────────────────

    def start_task_timer(self, task: Task) -> bool:
        if not task.start_timer(self.clock.now()):
            logger.debug("Timer for %r already running", task.title)
            return False
        with saving("start_task_timer"):
            self.repo.save_task(task)
        return True

    def stop_task_timer(self, task: Task) -> timedelta:
        """Stop, bank the time, log it. Returns the span (zero if not running)."""
        if not task.is_active:
            logger.debug("Timer for %r was not running", task.title)
            return timedelta(0)
        span = task.stop_timer(self.clock.now())
        self._record_work(task.title, span)
        with saving("stop_task_timer"):
            self.repo.save_task(task)
            self.repo.save_account(self.account)
        return span

    def toggle_task_timer(self, task: Task) -> bool:
        """Start if stopped, stop if running. Returns whether it is now running."""
        if task.is_active:
            self.stop_task_timer(task)
            return False
        return self.start_task_timer(task)

    def start_subtask_timer(self, task: Task, sub: Subtask) -> bool:
        if not sub.start_timer(self.clock.now()):
            return False
        with saving("start_subtask_timer"):
            self.repo.save_task(task)
        return True

    def stop_subtask_timer(self, task: Task, sub: Subtask) -> timedelta:
        if not sub.is_active:
            return timedelta(0)
        span = sub.stop_timer(self.clock.now())
        self._record_work(sub.title, span)
        with saving("stop_subtask_timer"):
            self.repo.save_task(task)
            self.repo.save_account(self.account)
        return span

    # ── Completion ──────────────────────────────────────────────────────────

    def complete_task(self, task: Task) -> Optional[XPAward]:
        """Complete a task and award its full reward. No-op if already done."""
        if task.completed:
            return None
        now = self.clock.now()
        reward = task.total_xp_reward(now)  # read before completion clears escalation
        escalated = task.is_escalated(now)
        span = task.complete(now)
        self._record_work(task.title, span)
        award = self.account.award_xp(reward, now)
        with saving("complete_task"):
            self.repo.save_task(task)
            self.repo.save_account(self.account)
        logger.info(
            "Task %r completed%s: +%d XP",
            task.title, " (technical debt cleared)" if escalated else "", award.granted,
        )
        return award

    def reopen_task(self, task: Task) -> None:
        """Un-check a completed task and take its reward back."""
        if not task.completed:
            return
        task.reopen()
        self.account.revert_xp(task.total_xp_reward(self.clock.now()))
        with saving("reopen_task"):
            self.repo.save_task(task)
            self.repo.save_account(self.account)

    def toggle_subtask(self, task: Task, sub: Subtask) -> bool:
        """
        Flip a subtask. Checking awards its tier XP, un-checking reverts it.
        Checking the last open subtask completes the parent with a flat bonus.
        """
        now = self.clock.now()
        if sub.toggle_completed():
            self.account.award_xp(sub.xp_reward, now)
        else:
            self.account.revert_xp(sub.xp_reward)

        if not task.completed and task.all_subtasks_completed:
            span = task.complete(now)
            self._record_work(task.title, span)
            self.account.award_xp(COMPLETION_BONUS, now)
            logger.info("All subtasks of %r done: task completed", task.title)

        with saving("toggle_subtask"):
            self.repo.save_task(task)
            self.repo.save_account(self.account)
        return sub.completed

    # ── Retry ───────────────────────────────────────────────────────────────

    def save_all(self, tasks: Iterable[Task] = ()) -> None:
        """Re-save in-memory state after a PersistenceFailure."""
        with saving("save_all"):
            for task in tasks:
                self.repo.save_task(task)
            self.repo.save_account(self.account)

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _record_work(self, name: str, span: timedelta) -> None:
        if span <= timedelta(0):
            return
        self.account.add_focus_minutes(span.total_seconds() / 60.0)
        with saving("log_work_session"):
            self.repo.add_work_session(name, span, self.clock.now())


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   The UI-facing API for the quest board: create tasks, run their timers,
#   check things off. It is where engine objects, the account and the
#   repository meet.
#
# Key methods:
#   - stop_task_timer(): flushes elapsed time, logs a WorkSession, adds the
#     minutes to the account's focus counter.
#   - complete_task(): reads the reward BEFORE completing, because a boss
#     task stops being a boss the moment it is completed.
#   - toggle_subtask(): tier XP on check, revert on un-check, and an
#     automatic parent completion (+50) when the last one is checked.
#
# Data flow:
#   UI click → QuestService.method() → Task/Subtask mutate → account
#   award/revert → Repository save (PersistenceFailure on error)
#
# Interviewer-friendly talking points:
#   1. Optimistic mutation: memory is updated first, then saved. If the
#      save fails, the UI can call save_all() without recomputing anything.
#   2. The account is injected, not looked up. Every service shares the
#      same ProgressionAccount instance.
#   3. Invalid actions (stopping a stopped timer, completing a done task)
#      are quiet no-ops, never exceptions.
