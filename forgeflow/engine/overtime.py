"""
Overtime detection — a one-shot alert when a running task timer passes the
configured focus length.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from .progression import ProgressionAccount
from .quests import TimedWork

logger = logging.getLogger(__name__)

OVERTIME_BURNOUT_PENALTY = 0.10


@dataclass
class OvertimeAlert:
    title: str
    worked: timedelta
    overrun: timedelta
    burnout: float


class OvertimeMonitor:
    """
    Watches one timer run at a time.

    The penalty and the alert fire on the first check that finds the timer
    over the limit; later checks during the same run only report the flag.
    Stopping the timer, or starting a new run, re-arms it.
    """

    def __init__(
        self,
        account: ProgressionAccount,
        limit: timedelta,
        on_overtime: Optional[Callable[[OvertimeAlert], None]] = None,
        penalty: float = OVERTIME_BURNOUT_PENALTY,
    ) -> None:
        self.account = account
        self.limit = limit
        self.on_overtime = on_overtime
        self.penalty = penalty
        self.overtime = False
        self._notified_run: Optional[datetime] = None

    def check(self, work: TimedWork, now: datetime) -> bool:
        if not work.is_active:
            self.overtime = False
            self._notified_run = None
            return False

        worked = work.current_elapsed(now)
        self.overtime = worked > self.limit
        if self.overtime and self._notified_run != work.active_since:
            self._notified_run = work.active_since
            self._fire(work, worked)
        return self.overtime

    def rearm(self) -> None:
        self.overtime = False
        self._notified_run = None

    def _fire(self, work: TimedWork, worked: timedelta) -> None:
        self.account.add_burnout(self.penalty)
        title = getattr(work, "title", "")
        alert = OvertimeAlert(
            title=title,
            worked=worked,
            overrun=worked - self.limit,
            burnout=self.account.burnout,
        )
        logger.info("Overtime on %r: %s over the limit", title, alert.overrun)
        if self.on_overtime:
            self.on_overtime(alert)
