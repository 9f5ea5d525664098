"""Unit tests for the focus timer state machine and its controller."""

import pytest
from datetime import datetime, timedelta
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from forgeflow.engine import focus
from forgeflow.engine.clock import ManualClock
from forgeflow.engine.focus import (
    BreakCompleted,
    FocusCompleted,
    FocusConfig,
    FocusSession,
    Phase,
    PhaseChanged,
)
from forgeflow.engine.progression import ProgressionAccount
from forgeflow.engine.quests import Task


# One-minute blocks keep the tick loops short
SHORT = FocusConfig(focus_minutes=1, short_break_minutes=1, long_break_minutes=2)


def _ticks(state, config, n):
    """Apply n ticks and collect every effect produced along the way."""
    effects = []
    for _ in range(n):
        state, fx = focus.tick(state, config)
        effects.extend(fx)
    return state, effects


@pytest.fixture
def clock():
    return ManualClock(datetime(2024, 1, 1, 9, 0, 0))


@pytest.fixture
def account(clock):
    return ProgressionAccount(last_activity_at=clock.now(), last_reset_date=clock.now().date())


class TestFocusConfig:
    def test_defaults(self):
        cfg = FocusConfig()
        assert cfg.focus_seconds == 1500
        assert cfg.break_seconds(Phase.SHORT_BREAK) == 300
        assert cfg.break_seconds(Phase.LONG_BREAK) == 900

    def test_rejects_empty_cycle(self):
        with pytest.raises(ValueError, match="sessions_per_cycle"):
            FocusConfig(sessions_per_cycle=0)

    def test_rejects_zero_minutes(self):
        with pytest.raises(ValueError):
            FocusConfig(short_break_minutes=0)


class TestTransitions:
    def test_start_from_idle(self):
        state, effects = focus.start(focus.initial_state(SHORT), SHORT)
        assert state.phase is Phase.FOCUS
        assert state.running
        assert state.remaining == 60
        assert effects == [PhaseChanged(Phase.IDLE, Phase.FOCUS, auto_started=False)]

    def test_tick_counts_down(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        state, effects = _ticks(state, SHORT, 10)
        assert state.remaining == 50
        assert effects == []

    def test_tick_while_paused_is_noop(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        paused, _ = focus.pause(state, SHORT)
        assert not paused.running
        after, effects = focus.tick(paused, SHORT)
        assert after == paused
        assert effects == []

    def test_idle_tick_is_noop(self):
        idle = focus.initial_state(SHORT)
        assert focus.tick(idle, SHORT) == (idle, [])

    def test_focus_to_short_break(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        state, effects = _ticks(state, SHORT, 60)
        assert state.phase is Phase.SHORT_BREAK
        assert state.running
        assert state.sessions_completed_in_cycle == 1
        assert state.remaining == 60
        assert effects[0] == FocusCompleted(seconds=60, xp=focus.FOCUS_XP)
        assert effects[1] == PhaseChanged(Phase.FOCUS, Phase.SHORT_BREAK, auto_started=True)

    def test_break_back_to_focus(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        state, _ = _ticks(state, SHORT, 60)
        state, effects = _ticks(state, SHORT, 60)
        assert state.phase is Phase.FOCUS
        assert state.remaining == 60
        assert effects[0] == BreakCompleted(Phase.SHORT_BREAK, focus.SHORT_BREAK_RECOVERY)

    def test_fourth_block_earns_long_break(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        for _ in range(3):
            state, _ = _ticks(state, SHORT, 120)  # focus + short break
        assert state.phase is Phase.FOCUS
        assert state.sessions_completed_in_cycle == 3

        state, _ = _ticks(state, SHORT, 60)
        assert state.phase is Phase.LONG_BREAK
        assert state.sessions_completed_in_cycle == 0
        assert state.remaining == 120

        state, effects = _ticks(state, SHORT, 120)
        assert state.phase is Phase.FOCUS
        assert BreakCompleted(Phase.LONG_BREAK, focus.LONG_BREAK_RECOVERY) in effects

    def test_no_auto_start(self):
        cfg = FocusConfig(focus_minutes=1, auto_start_break=False)
        state, _ = focus.start(focus.initial_state(cfg), cfg)
        state, effects = _ticks(state, cfg, 60)
        assert state.phase is Phase.SHORT_BREAK
        assert not state.running
        assert effects[-1].auto_started is False

    def test_skip_break(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        state, _ = _ticks(state, SHORT, 60)
        state, effects = focus.skip_break(state, SHORT)
        assert state.phase is Phase.FOCUS
        assert not state.running
        assert state.remaining == 60
        assert effects == []

    def test_skip_break_outside_break_is_noop(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        assert focus.skip_break(state, SHORT) == (state, [])

    def test_reset(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        state, _ = _ticks(state, SHORT, 70)
        state, effects = focus.reset(state, SHORT)
        assert state == focus.initial_state(SHORT)
        assert effects == [PhaseChanged(Phase.SHORT_BREAK, Phase.IDLE, auto_started=False)]

    def test_complete_early(self):
        cfg = FocusConfig()
        state, _ = focus.start(focus.initial_state(cfg), cfg)
        state, _ = _ticks(state, cfg, 600)
        state, effects = focus.complete_early(state, cfg)
        assert state.phase is Phase.IDLE
        assert effects[0] == FocusCompleted(seconds=600, xp=focus.FOCUS_XP, manual=True)

    def test_complete_early_outside_focus_is_noop(self):
        idle = focus.initial_state(SHORT)
        assert focus.complete_early(idle, SHORT) == (idle, [])

    def test_flow_mode_counts_up(self):
        state, _ = focus.set_flow_mode(focus.initial_state(SHORT), SHORT, True)
        state, _ = focus.start(state, SHORT)
        state, _ = _ticks(state, SHORT, 100)
        assert state.phase is Phase.FOCUS
        assert state.flow_elapsed == 100
        assert state.remaining == 60

        state, effects = focus.complete_early(state, SHORT)
        assert effects[0] == FocusCompleted(seconds=100, xp=focus.FLOW_XP, manual=True, flow=True)

    def test_flow_mode_mid_block_keeps_spent_time(self):
        cfg = FocusConfig()
        state, _ = focus.start(focus.initial_state(cfg), cfg)
        state, _ = _ticks(state, cfg, 300)
        state, _ = focus.pause(state, cfg)
        state, _ = focus.set_flow_mode(state, cfg, True)
        assert state.flow_elapsed == 300

        state, _ = focus.resume(state, cfg)
        state, _ = _ticks(state, cfg, 60)
        state, effects = focus.complete_early(state, cfg)
        assert effects[0] == FocusCompleted(seconds=360, xp=focus.FLOW_XP, manual=True, flow=True)

    def test_flow_mode_locked_while_running(self):
        state, _ = focus.start(focus.initial_state(SHORT), SHORT)
        assert focus.set_flow_mode(state, SHORT, True) == (state, [])


class TestFocusSession:
    def test_full_block_awards_and_logs(self, account, clock):
        logged = []
        session = FocusSession(account, clock, SHORT,
                               on_session_logged=lambda name, span: logged.append((name, span)))
        session.start()
        for _ in range(60):
            session.tick()
        assert session.phase is Phase.SHORT_BREAK
        assert account.current_xp == focus.FOCUS_XP
        assert account.total_focus_minutes == pytest.approx(1.0)
        assert logged == [("Focus Cycle", timedelta(seconds=60))]

    def test_break_recovers_burnout(self, account, clock):
        session = FocusSession(account, clock, SHORT)
        session.start()
        for _ in range(60):
            session.tick()
        assert account.burnout == pytest.approx(0.04)
        for _ in range(60):
            session.tick()
        assert session.phase is Phase.FOCUS
        assert account.burnout == 0.0

    def test_complete_early_finishes_attached_task(self, account, clock):
        task = Task(title="Ship release", created_at=clock.now())
        logged = []
        session = FocusSession(account, clock, task=task,
                               on_session_logged=lambda name, span: logged.append(name))
        session.start()
        session.tick()
        session.complete_early()
        assert task.completed
        assert account.current_xp == focus.FOCUS_XP + focus.ATTACHED_TASK_BONUS
        assert logged == ["Ship release"]
        assert session.phase is Phase.IDLE

    def test_complete_early_counts_running_task_timer(self, account, clock):
        task = Task(title="Ship release", created_at=clock.now())
        task.start_timer(clock.now())
        logged, saved = [], []
        session = FocusSession(account, clock, task=task,
                               on_session_logged=lambda name, span: logged.append((name, span)),
                               on_task_completed=saved.append)
        session.start()
        clock.advance(minutes=10)
        session.tick()
        session.complete_early()

        assert not task.is_active
        assert task.elapsed_time == timedelta(minutes=10)
        assert ("Ship release", timedelta(minutes=10)) in logged
        assert account.total_focus_minutes == pytest.approx(10 + 1 / 60)
        assert saved == [task]

    def test_quick_task_title_names_the_session(self, account, clock):
        logged = []
        session = FocusSession(account, clock,
                               on_session_logged=lambda name, span: logged.append(name))
        session.quick_task_title = "Inbox zero"
        session.start()
        session.complete_early()
        assert logged == ["Inbox zero"]

    def test_manual_completion_without_task(self, account, clock):
        logged = []
        session = FocusSession(account, clock,
                               on_session_logged=lambda name, span: logged.append(name))
        session.start()
        session.complete_early()
        assert logged == ["Deep Work Cycle"]

    def test_toggle(self, account, clock):
        session = FocusSession(account, clock)
        session.toggle()
        assert session.running
        session.toggle()
        assert not session.running
        assert session.phase is Phase.FOCUS

    def test_set_focus_minutes_clamps(self, account, clock):
        session = FocusSession(account, clock)
        assert session.set_focus_minutes(200)
        assert session.remaining == 120 * 60
        session.set_focus_minutes(1)
        assert session.total == 5 * 60
        assert session.overtime_monitor.limit == timedelta(minutes=5)

    def test_set_focus_minutes_only_while_idle(self, account, clock):
        session = FocusSession(account, clock)
        session.start()
        assert not session.set_focus_minutes(50)
        assert session.total == 25 * 60

    def test_phase_callback(self, account, clock):
        changes = []
        session = FocusSession(account, clock, on_phase_changed=changes.append)
        session.start()
        session.reset()
        assert [c.current for c in changes] == [Phase.FOCUS, Phase.IDLE]


class TestSessionOvertime:
    def test_attached_task_overtime(self, account, clock):
        alerts = []
        task = Task(title="Migration", created_at=clock.now())
        task.start_timer(clock.now())
        session = FocusSession(account, clock, SHORT, task=task, on_overtime=alerts.append)
        session.start()

        clock.advance(seconds=30)
        session.tick()
        assert not session.overtime

        clock.advance(seconds=31)
        session.tick()
        assert session.overtime
        assert len(alerts) == 1
        assert account.burnout == pytest.approx(0.10)

        session.tick()
        assert len(alerts) == 1

    def test_reset_clears_overtime(self, account, clock):
        task = Task(title="Migration", created_at=clock.now())
        task.start_timer(clock.now())
        session = FocusSession(account, clock, SHORT, task=task)
        session.start()
        clock.advance(minutes=2)
        session.tick()
        assert session.overtime
        session.reset()
        assert not session.overtime

    def test_no_overtime_without_task(self, account, clock):
        session = FocusSession(account, clock, SHORT)
        session.start()
        clock.advance(hours=1)
        session.tick()
        assert not session.check_overtime()
