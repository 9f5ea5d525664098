"""
Qt Ticker — the 1-second heartbeat that drives a FocusSession.

Uses a QTimer so ticks arrive on the Qt event loop, the same thread the UI
and every other engine call run on. The engine never sees the timer; it only
sees tick() calls.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from forgeflow.config import DEFAULT_AUTO_START_DELAY_MS, DEFAULT_TICK_INTERVAL_MS
from forgeflow.engine.focus import FocusSession, Phase, PhaseChanged
from forgeflow.engine.overtime import OvertimeAlert

logger = logging.getLogger(__name__)


class QtTicker(QObject):
    """Feeds ticks into a FocusSession and re-emits what happened as signals."""

    ticked = Signal(int)             # seconds remaining (or flow seconds)
    phase_changed = Signal(object)   # PhaseChanged
    overtime = Signal(object)        # OvertimeAlert

    def __init__(
        self,
        session: FocusSession,
        interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        auto_start_delay_ms: int = DEFAULT_AUTO_START_DELAY_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.session = session
        self.auto_start_delay_ms = auto_start_delay_ms

        session.on_phase_changed = self._on_phase_changed
        session.overtime_monitor.on_overtime = self._on_overtime

        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)

        self._delay = QTimer(self)
        self._delay.setSingleShot(True)
        self._delay.timeout.connect(self._timer.start)

    # ── Public API ──────────────────────────────────────────────────────────

    def start(self) -> None:
        self._timer.start()
        logger.info("Ticker started (%d ms)", self._timer.interval())

    def stop(self) -> None:
        self._delay.stop()
        self._timer.stop()

    @property
    def is_active(self) -> bool:
        return self._timer.isActive() or self._delay.isActive()

    # ── Callbacks ───────────────────────────────────────────────────────────

    def _on_timeout(self) -> None:
        self.session.tick()
        if self.session.flow_mode and self.session.phase is Phase.FOCUS:
            self.ticked.emit(self.session.state.flow_elapsed)
        else:
            self.ticked.emit(self.session.remaining)

    def _on_phase_changed(self, change: PhaseChanged) -> None:
        logger.info("Phase %s -> %s", change.previous.name, change.current.name)
        if change.auto_started and self._timer.isActive():
            # Hold the next phase for a moment so the UI can show the switch.
            self._timer.stop()
            self._delay.start(self.auto_start_delay_ms)
        self.phase_changed.emit(change)

    def _on_overtime(self, alert: OvertimeAlert) -> None:
        self.overtime.emit(alert)


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Owns the only periodic timer in the system and translates engine
#   callbacks into Qt signals the UI can connect to.
#
# Key design decisions:
#   - QTimer instead of threading.Timer: ticks run on the main thread, so
#     the engine needs no locks and the UI can react directly.
#   - The auto-start pause (1.5s by default) lives here, not in the engine.
#     The engine already decided the next phase is running; the ticker just
#     waits before counting it down.
#
# Data flow:
#   QTimer.timeout → _on_timeout → session.tick() → effects →
#   session.on_phase_changed → _on_phase_changed → phase_changed signal
