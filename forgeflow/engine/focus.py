"""
Focus timer — a Pomodoro-style state machine.

The machine itself is a set of pure functions: each takes the current
FocusState plus the FocusConfig and returns the next state and a list of
effects. Nothing in the transition functions touches the account, a timer
or the clock. FocusSession (bottom of the file) is the small controller that
holds the current state, feeds ticks in, and applies effects to the
ProgressionAccount.

    idle → focus → (short_break | long_break) → focus → …
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from .clock import Clock
from .overtime import OvertimeAlert, OvertimeMonitor
from .progression import ProgressionAccount
from .quests import Task

logger = logging.getLogger(__name__)

FOCUS_XP = 15
FLOW_XP = 30
ATTACHED_TASK_BONUS = 50
SHORT_BREAK_RECOVERY = 0.05
LONG_BREAK_RECOVERY = 0.15
MIN_FOCUS_MINUTES = 5
MAX_FOCUS_MINUTES = 120


class Phase(Enum):
    IDLE = "IDLE"
    FOCUS = "FOCUS"
    SHORT_BREAK = "SHORT BREAK"
    LONG_BREAK = "LONG BREAK"

    @property
    def is_break(self) -> bool:
        return self in (Phase.SHORT_BREAK, Phase.LONG_BREAK)


@dataclass(frozen=True)
class FocusConfig:
    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    sessions_per_cycle: int = 4
    auto_start_break: bool = True

    def __post_init__(self) -> None:
        if self.sessions_per_cycle < 1:
            raise ValueError("sessions_per_cycle must be at least 1")
        for name in ("focus_minutes", "short_break_minutes", "long_break_minutes"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1 minute")

    @property
    def focus_seconds(self) -> int:
        return self.focus_minutes * 60

    def break_seconds(self, phase: Phase) -> int:
        if phase is Phase.LONG_BREAK:
            return self.long_break_minutes * 60
        return self.short_break_minutes * 60


@dataclass(frozen=True)
class FocusState:
    phase: Phase = Phase.IDLE
    remaining: int = 0
    total: int = 0
    sessions_completed_in_cycle: int = 0
    running: bool = False
    flow_mode: bool = False
    flow_elapsed: int = 0


# ── Effects ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FocusCompleted:
    seconds: int
    xp: int
    manual: bool = False
    flow: bool = False


@dataclass(frozen=True)
class BreakCompleted:
    phase: Phase
    recovery: float


@dataclass(frozen=True)
class PhaseChanged:
    previous: Phase
    current: Phase
    auto_started: bool


Effect = Union[FocusCompleted, BreakCompleted, PhaseChanged]
Transition = Tuple[FocusState, List[Effect]]


# ── Pure transitions ────────────────────────────────────────────────────────

def initial_state(config: FocusConfig) -> FocusState:
    return FocusState(remaining=config.focus_seconds, total=config.focus_seconds)


def start(state: FocusState, config: FocusConfig) -> Transition:
    """Begin a focus phase from idle, or resume a paused phase."""
    if state.phase is Phase.IDLE:
        return replace(
            state,
            phase=Phase.FOCUS,
            remaining=config.focus_seconds,
            total=config.focus_seconds,
            running=True,
            flow_elapsed=0,
        ), [PhaseChanged(Phase.IDLE, Phase.FOCUS, auto_started=False)]
    return resume(state, config)


def pause(state: FocusState, config: FocusConfig) -> Transition:
    if state.phase is Phase.IDLE or not state.running:
        return state, []
    return replace(state, running=False), []


def resume(state: FocusState, config: FocusConfig) -> Transition:
    if state.phase is Phase.IDLE or state.running:
        return state, []
    return replace(state, running=True), []


def tick(state: FocusState, config: FocusConfig) -> Transition:
    """One second of wall-clock time passing."""
    if not state.running or state.phase is Phase.IDLE:
        return state, []

    if state.phase is Phase.FOCUS and state.flow_mode:
        return replace(state, flow_elapsed=state.flow_elapsed + 1), []

    remaining = state.remaining - 1
    if remaining > 0:
        return replace(state, remaining=remaining), []

    if state.phase is Phase.FOCUS:
        return _finish_focus(replace(state, remaining=0), config)
    return _finish_break(replace(state, remaining=0), config)


def skip_break(state: FocusState, config: FocusConfig) -> Transition:
    """Jump straight back to focus. No recovery is credited."""
    if not state.phase.is_break:
        return state, []
    return _enter_focus(state, config, running=False), []


def reset(state: FocusState, config: FocusConfig) -> Transition:
    effects: List[Effect] = []
    if state.phase is not Phase.IDLE:
        effects.append(PhaseChanged(state.phase, Phase.IDLE, auto_started=False))
    return initial_state(config), effects


def complete_early(state: FocusState, config: FocusConfig) -> Transition:
    """Manual completion of the current focus phase, then back to idle."""
    if state.phase is not Phase.FOCUS:
        return state, []
    if state.flow_mode:
        done = FocusCompleted(seconds=state.flow_elapsed, xp=FLOW_XP, manual=True, flow=True)
    else:
        spent = max(0, state.total - state.remaining)
        done = FocusCompleted(seconds=spent, xp=FOCUS_XP, manual=True)
    idle, effects = reset(state, config)
    return idle, [done] + effects


def set_flow_mode(state: FocusState, config: FocusConfig, enabled: bool) -> Transition:
    """Flow mode can be toggled while idle or while a focus phase is paused."""
    if state.phase is Phase.IDLE:
        return replace(state, flow_mode=enabled), []
    if state.phase is Phase.FOCUS and not state.running:
        if enabled and not state.flow_mode:
            # Countdown seconds already spent carry over into the flow count.
            spent = max(0, state.total - state.remaining)
            return replace(state, flow_mode=True, flow_elapsed=spent), []
        return replace(state, flow_mode=enabled), []
    return state, []


def configure(state: FocusState, config: FocusConfig) -> Transition:
    """Pick up a new config. Durations only change while idle."""
    if state.phase is not Phase.IDLE:
        return state, []
    return replace(state, remaining=config.focus_seconds, total=config.focus_seconds), []


def _enter_focus(state: FocusState, config: FocusConfig, running: bool) -> FocusState:
    return replace(
        state,
        phase=Phase.FOCUS,
        remaining=config.focus_seconds,
        total=config.focus_seconds,
        running=running,
        flow_elapsed=0,
    )


def _finish_focus(state: FocusState, config: FocusConfig) -> Transition:
    done = FocusCompleted(seconds=state.total, xp=FOCUS_XP)
    count = state.sessions_completed_in_cycle + 1
    if count >= config.sessions_per_cycle:
        next_phase = Phase.LONG_BREAK
        count = 0
    else:
        next_phase = Phase.SHORT_BREAK
    seconds = config.break_seconds(next_phase)
    nxt = replace(
        state,
        phase=next_phase,
        remaining=seconds,
        total=seconds,
        sessions_completed_in_cycle=count,
        running=config.auto_start_break,
    )
    return nxt, [done, PhaseChanged(Phase.FOCUS, next_phase, config.auto_start_break)]


def _finish_break(state: FocusState, config: FocusConfig) -> Transition:
    recovery = LONG_BREAK_RECOVERY if state.phase is Phase.LONG_BREAK else SHORT_BREAK_RECOVERY
    done = BreakCompleted(phase=state.phase, recovery=recovery)
    nxt = _enter_focus(state, config, running=config.auto_start_break)
    return nxt, [done, PhaseChanged(state.phase, Phase.FOCUS, config.auto_start_break)]


# ── Controller ──────────────────────────────────────────────────────────────

class FocusSession:
    """
    Holds one FocusState and applies the effects of each transition.

    Also hosts the overtime check for an attached task: while in a focus
    phase, every tick asks the OvertimeMonitor whether the task's own timer
    has run past the configured focus length.
    """

    def __init__(
        self,
        account: ProgressionAccount,
        clock: Clock,
        config: Optional[FocusConfig] = None,
        task: Optional[Task] = None,
        on_overtime: Optional[Callable[[OvertimeAlert], None]] = None,
        on_session_logged: Optional[Callable[[str, timedelta], None]] = None,
        on_phase_changed: Optional[Callable[[PhaseChanged], None]] = None,
        on_task_completed: Optional[Callable[[Task], None]] = None,
    ) -> None:
        self.account = account
        self.clock = clock
        self.config = config or FocusConfig()
        self.task = task
        self.quick_task_title = ""
        self.on_session_logged = on_session_logged
        self.on_phase_changed = on_phase_changed
        self.on_task_completed = on_task_completed
        self.overtime_monitor = OvertimeMonitor(
            account, timedelta(seconds=self.config.focus_seconds), on_overtime
        )
        self._state = initial_state(self.config)

    # ── Read-only projections ───────────────────────────────────────────────

    @property
    def state(self) -> FocusState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def remaining(self) -> int:
        return self._state.remaining

    @property
    def total(self) -> int:
        return self._state.total

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def sessions_completed_in_cycle(self) -> int:
        return self._state.sessions_completed_in_cycle

    @property
    def flow_mode(self) -> bool:
        return self._state.flow_mode

    @property
    def overtime(self) -> bool:
        return self.overtime_monitor.overtime

    # ── Commands ────────────────────────────────────────────────────────────

    def attach_task(self, task: Optional[Task]) -> None:
        self.task = task
        self.overtime_monitor.rearm()

    def start(self) -> List[Effect]:
        return self._apply("start", start(self._state, self.config))

    def pause(self) -> List[Effect]:
        return self._apply("pause", pause(self._state, self.config))

    def resume(self) -> List[Effect]:
        return self._apply("resume", resume(self._state, self.config))

    def toggle(self) -> List[Effect]:
        return self.pause() if self.running else self.start()

    def skip_break(self) -> List[Effect]:
        return self._apply("skip_break", skip_break(self._state, self.config))

    def reset(self) -> List[Effect]:
        return self._apply("reset", reset(self._state, self.config))

    def complete_early(self) -> List[Effect]:
        return self._apply("complete_early", complete_early(self._state, self.config))

    def set_flow_mode(self, enabled: bool) -> List[Effect]:
        return self._apply("set_flow_mode", set_flow_mode(self._state, self.config, enabled))

    def set_focus_minutes(self, minutes: int) -> bool:
        """Preset / custom duration. Only honoured while idle."""
        if self.phase is not Phase.IDLE:
            logger.debug("Ignoring duration change outside idle (phase=%s)", self.phase.name)
            return False
        minutes = max(MIN_FOCUS_MINUTES, min(MAX_FOCUS_MINUTES, int(minutes)))
        self.config = replace(self.config, focus_minutes=minutes)
        self.overtime_monitor.limit = timedelta(seconds=self.config.focus_seconds)
        self._apply("configure", configure(self._state, self.config))
        return True

    def tick(self) -> List[Effect]:
        effects = self._apply("tick", tick(self._state, self.config))
        self.check_overtime()
        return effects

    def check_overtime(self) -> bool:
        if self.task is None or self.phase is not Phase.FOCUS:
            return False
        return self.overtime_monitor.check(self.task, self.clock.now())

    # ── Internal ────────────────────────────────────────────────────────────

    def _apply(self, action: str, transition: Transition) -> List[Effect]:
        new_state, effects = transition
        if new_state == self._state and not effects:
            if action != "tick":
                logger.debug("No-op %s in phase %s", action, self._state.phase.name)
            return effects
        self._state = new_state
        for effect in effects:
            self._handle(effect)
        return effects

    def _handle(self, effect: Effect) -> None:
        now = self.clock.now()
        if isinstance(effect, FocusCompleted):
            self.account.add_focus_minutes(effect.seconds / 60.0)
            self.account.award_xp(effect.xp, now)
            if self.on_session_logged:
                self.on_session_logged(self._session_name(effect), timedelta(seconds=effect.seconds))
            if effect.manual and self.task is not None and not self.task.completed:
                self._finish_task(now)
            logger.info("Focus block done: %ds, +%d XP", effect.seconds, effect.xp)
        elif isinstance(effect, BreakCompleted):
            self.account.recover_burnout(effect.recovery)
            logger.info("%s over: burnout -%.2f", effect.phase.value.title(), effect.recovery)
        elif isinstance(effect, PhaseChanged):
            if effect.current is Phase.IDLE:
                self.overtime_monitor.rearm()
            if self.on_phase_changed:
                self.on_phase_changed(effect)

    def _finish_task(self, now: datetime) -> None:
        task = self.task
        span = task.complete(now)
        if span > timedelta(0):
            self.account.add_focus_minutes(span.total_seconds() / 60.0)
            if self.on_session_logged:
                self.on_session_logged(task.title, span)
        self.account.award_xp(ATTACHED_TASK_BONUS, now)
        if self.on_task_completed:
            self.on_task_completed(task)

    def _session_name(self, effect: FocusCompleted) -> str:
        if self.task is not None:
            return self.task.title
        if self.quick_task_title:
            return self.quick_task_title
        return "Deep Work Cycle" if effect.manual else "Focus Cycle"


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   The Pomodoro engine. Focus blocks earn XP and count toward a cycle;
#   every Nth block is followed by a long break instead of a short one;
#   finishing a break recovers burnout. Flow mode drops the countdown and
#   just counts up until the user completes manually.
#
# Key classes:
#   - FocusState: an immutable snapshot (phase, remaining, cycle count...).
#   - start / pause / tick / skip_break / reset / complete_early: pure
#     functions returning (next_state, effects). Invalid calls return the
#     state unchanged with no effects, which is how no-ops are expressed.
#   - FocusSession: the only stateful piece. It swaps in the next state and
#     turns effects into account mutations and callbacks.
#
# Data flow:
#   QtTicker (1s) → FocusSession.tick() → tick(state) → effects →
#   account.award_xp / recover_burnout → on_phase_changed → UI/ticker.
#
# Interviewer-friendly talking points:
#   1. Separating "decide" from "do": the transition table is testable by
#      feeding states in and asserting on what comes out, with no callbacks
#      or timers involved.
#   2. Auto-chaining is a state decision (running=True after a phase ends),
#      while the 1.5s pause before the next phase starts counting is a
#      presentation detail left to the ticker.
#   3. The timer is ephemeral. It is never persisted, so a restart always
#      comes back idle; only the focus minutes and XP it produced survive.
