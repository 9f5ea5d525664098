"""
Row models for ForgeFlow storage that have no engine counterpart.

Accounts, tasks and subtasks are stored straight from the engine dataclasses;
the work-session log is a storage-only record, so it lives here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional


@dataclass
class WorkSession:
    """One logged stretch of work: a stopped task timer or a finished focus block."""
    id: Optional[int] = None
    task_name: str = ""
    duration: timedelta = field(default_factory=timedelta)
    recorded_at: Optional[datetime] = None

    @property
    def minutes(self) -> float:
        return self.duration.total_seconds() / 60.0
