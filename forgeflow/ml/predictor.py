"""
Focus Insights — lightweight numbers over the work-session log.

Design philosophy:
  - Works with TINY datasets (even 3-5 sessions).
  - Falls back gracefully: trend line → recency-weighted mean → None.
  - No heavy frameworks; just numpy.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

import numpy as np

from forgeflow.data.models import WorkSession
from forgeflow.data.repository import Repository
from forgeflow.engine.clock import Clock
from forgeflow.engine.focus import MAX_FOCUS_MINUTES, MIN_FOCUS_MINUTES

logger = logging.getLogger(__name__)

MIN_SAMPLES_FOR_REGRESSION = 8
MIN_SAMPLES_FOR_AVERAGE = 3
PRESET_STEP_MINUTES = 5


class FocusPredictor:
    """
    Summarises logged work and suggests a focus-block length.

    Strategy for suggest_focus_minutes():
      1. If >= 8 logged sessions → least-squares trend over session order
      2. If >= 3 logged sessions → recency-weighted mean
      3. Else → None (insufficient data)
    """

    def __init__(self, repo: Repository, clock: Clock) -> None:
        self.repo = repo
        self.clock = clock

    # ── Public API ──────────────────────────────────────────────────────────

    def daily_focus_minutes(self, days: int = 7) -> List[float]:
        """Focus minutes per calendar day, oldest first, today last."""
        if days <= 0:
            return []
        today = self.clock.now().date()
        first_day = today - timedelta(days=days - 1)
        start = datetime.combine(first_day, datetime.min.time())
        sessions = self.repo.list_work_sessions(start_after=start, limit=10000)
        if not sessions:
            return [0.0] * days

        offsets = np.array([(s.recorded_at.date() - first_day).days for s in sessions])
        minutes = np.array([s.minutes for s in sessions], dtype=float)
        mask = (offsets >= 0) & (offsets < days)
        totals = np.bincount(offsets[mask], weights=minutes[mask], minlength=days)
        return [float(v) for v in totals]

    def today_focus_minutes(self) -> float:
        return self.daily_focus_minutes(1)[0]

    def suggest_focus_minutes(self) -> Optional[int]:
        """Recommend a focus-block length on the 5-minute preset grid."""
        values = self._session_minutes(self.repo.list_work_sessions(limit=200))
        if len(values) >= MIN_SAMPLES_FOR_REGRESSION:
            raw = self._trend_forecast(values)
        elif len(values) >= MIN_SAMPLES_FOR_AVERAGE:
            raw = self._recency_weighted_mean(values)
        else:
            return None
        return self._snap_to_preset(raw)

    def has_enough_data(self) -> bool:
        return self.repo.count_work_sessions() >= MIN_SAMPLES_FOR_AVERAGE

    # ── Internal ────────────────────────────────────────────────────────────

    @staticmethod
    def _session_minutes(sessions: List[WorkSession]) -> List[float]:
        """Chronological (oldest first) positive durations in minutes."""
        return [s.minutes for s in reversed(sessions) if s.minutes > 0]

    def _trend_forecast(self, values: List[float]) -> float:
        """Extend the least-squares line over session order by one step, clamped to [mean/2, 2*mean]."""
        y = np.asarray(values, dtype=float)
        slope, intercept = np.polyfit(np.arange(y.size), y, 1)
        mean_val = y.mean()
        return float(np.clip(slope * y.size + intercept, 0.5 * mean_val, 2.0 * mean_val))

    @staticmethod
    def _recency_weighted_mean(values: List[float], alpha: float = 0.3) -> float:
        # Newest session weighs alpha, each older one (1 - alpha) times less;
        # the oldest takes the remainder so the weights sum to 1.
        n = len(values)
        weights = alpha * (1 - alpha) ** np.arange(n - 1, -1, -1)
        weights[0] = (1 - alpha) ** (n - 1)
        return float(np.dot(weights, np.asarray(values, dtype=float)))

    @staticmethod
    def _snap_to_preset(minutes: float) -> int:
        snapped = int(round(minutes / PRESET_STEP_MINUTES)) * PRESET_STEP_MINUTES
        return max(MIN_FOCUS_MINUTES, min(MAX_FOCUS_MINUTES, snapped))


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Looks at past work sessions to chart focus time per day and to suggest
#   how long the next focus block should be.
#
# Key design decisions:
#   - Tiered fallback: trend line → weighted mean → None. New users have no data, and
#     a suggestion from two sessions would be noise.
#   - np.bincount with weights does the per-day grouping in one pass.
#   - Suggestions snap to the same 5-minute grid (5..120) the custom timer
#     sheet offers, so a suggestion is always a value the user can pick.
#
# Interviewer-friendly talking points:
#   1. Why not deep learning? Overkill for <100 data points per user.
#   2. Clamping forecasts: a trend line can extrapolate wildly, so
#      it is clamped to [0.5*mean, 2*mean].
