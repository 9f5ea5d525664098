"""Unit tests for the engine: progression account, tasks, overtime."""

import random

import pytest
from datetime import date, datetime, timedelta
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from forgeflow.engine.clock import ManualClock
from forgeflow.engine.overtime import OvertimeMonitor
from forgeflow.engine.progression import BurnoutPolicy, BurnoutStatus, ProgressionAccount
from forgeflow.engine.quests import Difficulty, Subtask, Task


T0 = datetime(2024, 1, 1, 9, 0, 0)


@pytest.fixture
def account():
    return ProgressionAccount(last_activity_at=T0, last_reset_date=T0.date())


class TestAwardXP:
    def test_basic_award(self, account):
        award = account.award_xp(20, T0, difficulty_multiplier=1.0)
        assert award.granted == 20
        assert account.current_xp == 20
        assert account.currency == 10
        assert account.burnout == pytest.approx(0.04)
        assert not award.leveled_up

    def test_wellness_penalty_halves_xp(self, account):
        account.burnout = 0.9
        award = account.award_xp(100, T0)
        assert award.granted == 50
        assert account.current_xp == 50
        assert account.currency == 25
        assert account.burnout == pytest.approx(0.94)

    def test_threshold_itself_is_not_penalised(self, account):
        account.burnout = 0.75
        assert account.award_xp(10, T0, difficulty_multiplier=0).granted == 10

    def test_odd_xp_floors_currency(self, account):
        account.award_xp(25, T0)
        assert account.currency == 12

    def test_negative_amount_grants_nothing(self, account):
        award = account.award_xp(-40, T0)
        assert award.granted == 0
        assert account.current_xp == 0

    def test_burnout_clamped_at_one(self, account):
        account.burnout = 0.99
        account.award_xp(10, T0, difficulty_multiplier=5)
        assert account.burnout == 1.0

    def test_level_up(self, account):
        account.current_xp = 90
        award = account.award_xp(20, T0, difficulty_multiplier=0)
        assert award.leveled_up
        assert award.levels_gained == 1
        assert account.level == 2
        assert account.current_xp == 10
        assert account.xp_to_next_level == 240
        assert account.currency == 110
        assert account.burnout == 0.0
        assert award.currency == 110

    def test_large_award_levels_up_once(self, account):
        award = account.award_xp(1000, T0)
        assert award.levels_gained == 1
        assert account.level == 2
        assert account.current_xp == 900

    def test_overflow_carries_to_next_award(self, account):
        account.award_xp(1000, T0)
        account.award_xp(0, T0)
        assert account.level == 3
        assert account.current_xp == 660

    def test_uncapped_policy_drains_overflow(self):
        acc = ProgressionAccount(
            last_activity_at=T0, policy=BurnoutPolicy(max_level_ups_per_award=None)
        )
        award = acc.award_xp(1000, T0)
        assert award.levels_gained == 3
        assert acc.level == 4
        assert acc.current_xp == 300
        assert acc.current_xp < acc.xp_to_next_level

    def test_award_marks_activity(self, account):
        later = T0 + timedelta(minutes=10)
        account.award_xp(10, later)
        assert account.last_activity_at == later

    def test_level_progress_fraction(self, account):
        account.award_xp(30, T0)
        assert account.level_progress_fraction == pytest.approx(0.3)

    def test_revert_xp_floors_at_zero(self, account):
        account.award_xp(10, T0)
        account.revert_xp(25)
        assert account.current_xp == 0
        assert account.currency == 5


class TestBurnout:
    def test_decay_after_rest(self, account):
        account.burnout = 0.5
        account.decay_burnout(T0 + timedelta(hours=2))
        assert account.burnout == pytest.approx(0.1)

    def test_no_decay_within_grace(self, account):
        account.burnout = 0.5
        account.decay_burnout(T0 + timedelta(minutes=30))
        assert account.burnout == 0.5

    def test_decay_is_not_credited_twice(self, account):
        account.burnout = 0.8
        two_hours = T0 + timedelta(hours=2)
        account.decay_burnout(two_hours)
        account.decay_burnout(two_hours)
        assert account.burnout == pytest.approx(0.4)
        account.decay_burnout(T0 + timedelta(hours=3))
        assert account.burnout == pytest.approx(0.2)

    def test_decay_never_negative(self, account):
        account.burnout = 0.1
        account.decay_burnout(T0 + timedelta(days=1))
        assert account.burnout == 0.0

    def test_award_applies_decay_first(self, account):
        account.burnout = 0.9
        award = account.award_xp(100, T0 + timedelta(hours=1), difficulty_multiplier=0)
        # 0.9 - 0.2 = 0.7 is below the threshold, so no penalty
        assert award.granted == 100

    def test_recover_and_add_clamp(self, account):
        account.recover_burnout(0.5)
        assert account.burnout == 0.0
        account.add_burnout(1.5)
        assert account.burnout == 1.0

    @pytest.mark.parametrize("value,status", [
        (0.0, BurnoutStatus.OPTIMAL),
        (0.29, BurnoutStatus.OPTIMAL),
        (0.3, BurnoutStatus.STRAINED),
        (0.7, BurnoutStatus.STRAINED),
        (0.71, BurnoutStatus.CRITICAL),
    ])
    def test_status_bands(self, account, value, status):
        account.burnout = value
        assert account.burnout_status is status

    def test_status_label(self):
        assert BurnoutStatus.CRITICAL.label == "THERMAL OVERLOAD"


class TestDailyReset:
    def test_same_day_is_noop(self, account):
        account.burnout = 0.4
        assert not account.check_daily_reset(T0 + timedelta(hours=5))
        assert account.burnout == 0.4

    def test_next_day_extends_streak(self, account):
        account.burnout = 0.4
        account.total_focus_minutes = 90
        assert account.check_daily_reset(T0 + timedelta(days=1))
        assert account.streak_days == 2
        assert account.burnout == 0.0
        assert account.total_focus_minutes == 0.0
        assert account.last_reset_date == date(2024, 1, 2)

    def test_missed_day_breaks_streak(self, account):
        account.streak_days = 5
        account.check_daily_reset(T0 + timedelta(days=3))
        assert account.streak_days == 1


class TestProgressionSequences:
    """Random operation sequences; every step must keep the account in bounds."""

    @pytest.mark.parametrize("seed", range(10))
    def test_bounds_hold(self, seed):
        rng = random.Random(seed)
        clock = ManualClock(T0)
        acc = ProgressionAccount(last_activity_at=T0, last_reset_date=T0.date())

        for _ in range(300):
            level_before = acc.level
            op = rng.choice(["award", "revert", "recover", "strain", "decay"])
            if op == "award":
                # at most one threshold's worth, so a single level-up absorbs it
                acc.award_xp(rng.randint(0, 100), clock.now(), rng.uniform(0, 3))
            elif op == "revert":
                acc.revert_xp(rng.randint(0, 60))
            elif op == "recover":
                acc.recover_burnout(rng.uniform(-0.2, 0.5))
            elif op == "strain":
                acc.add_burnout(rng.uniform(-0.2, 0.5))
            else:
                acc.decay_burnout(clock.now())
            clock.advance(minutes=rng.randint(0, 180))

            assert acc.level >= level_before
            assert 0.0 <= acc.burnout <= 1.0
            assert 0 <= acc.current_xp < acc.xp_to_next_level
            assert acc.xp_to_next_level == (100 if acc.level == 1 else acc.level * 120)


class TestTimers:
    def test_start_stop_round_trip(self):
        clock = ManualClock(T0)
        task = Task(title="Write docs", created_at=T0)
        assert task.start_timer(clock.now())
        clock.advance(seconds=90)
        assert task.current_elapsed(clock.now()) == timedelta(seconds=90)
        assert task.stop_timer(clock.now()) == timedelta(seconds=90)
        assert task.elapsed_time == timedelta(seconds=90)
        assert not task.is_active

    def test_double_start_is_noop(self):
        task = Task(created_at=T0)
        task.start_timer(T0)
        assert not task.start_timer(T0 + timedelta(minutes=1))
        assert task.active_since == T0

    def test_stop_when_stopped_returns_zero(self):
        sub = Subtask(title="Endpoints")
        assert sub.stop_timer(T0) == timedelta(0)
        assert sub.elapsed_time == timedelta(0)

    def test_total_elapsed_includes_subtasks(self):
        task = Task(created_at=T0, elapsed_time=timedelta(minutes=10))
        sub = task.add_subtask("Models")
        sub.start_timer(T0)
        assert task.total_elapsed_time(T0 + timedelta(minutes=5)) == timedelta(minutes=15)


class TestTask:
    def test_escalation_boundary_is_strict(self):
        task = Task(created_at=T0)
        assert not task.is_escalated(T0 + timedelta(days=3))
        assert task.is_escalated(T0 + timedelta(days=3, seconds=1))

    def test_completed_task_is_never_escalated(self):
        task = Task(created_at=T0, completed=True)
        assert not task.is_escalated(T0 + timedelta(days=30))

    def test_total_reward(self):
        task = Task(created_at=T0)
        task.add_subtask("a", Difficulty.ROUTINE)
        task.add_subtask("b", Difficulty.COMPLEX)
        task.add_subtask("c", Difficulty.LEGACY)
        assert task.total_xp_reward(T0) == 10 + 25 + 50 + 50
        assert task.total_xp_reward(T0 + timedelta(days=4)) == 10 + 25 + 50 + 100

    def test_complete_cascades(self):
        task = Task(created_at=T0)
        a = task.add_subtask("a")
        b = task.add_subtask("b")
        task.start_timer(T0)
        b.start_timer(T0)
        span = task.complete(T0 + timedelta(minutes=2))
        assert span == timedelta(minutes=2)
        assert task.completed and a.completed and b.completed
        assert not b.is_active
        assert b.elapsed_time == timedelta(minutes=2)

    def test_progress(self):
        task = Task(created_at=T0)
        assert task.progress == 0.0
        a = task.add_subtask("a")
        task.add_subtask("b")
        a.toggle_completed()
        assert task.progress == 0.5
        assert not task.all_subtasks_completed

    def test_remove_subtask_by_identity(self):
        task = Task(created_at=T0)
        a = task.add_subtask("same")
        b = task.add_subtask("same")
        task.remove_subtask(a)
        assert task.subtasks == [b]
        assert task.subtasks[0] is b

    def test_difficulty_table(self):
        assert [d.xp_reward for d in Difficulty] == [10, 25, 50]
        assert Difficulty("Legacy") is Difficulty.LEGACY


class TestOvertime:
    def test_fires_once_per_run(self, account):
        alerts = []
        monitor = OvertimeMonitor(account, timedelta(minutes=25), alerts.append)
        task = Task(title="Refactor", created_at=T0)
        task.start_timer(T0)

        assert not monitor.check(task, T0 + timedelta(minutes=25))
        assert monitor.check(task, T0 + timedelta(minutes=26))
        assert monitor.check(task, T0 + timedelta(minutes=27))
        assert len(alerts) == 1
        assert account.burnout == pytest.approx(0.10)
        assert alerts[0].title == "Refactor"
        assert alerts[0].overrun == timedelta(minutes=1)

    def test_new_run_rearms(self, account):
        alerts = []
        monitor = OvertimeMonitor(account, timedelta(minutes=25), alerts.append)
        task = Task(title="Refactor", created_at=T0)
        task.start_timer(T0)
        monitor.check(task, T0 + timedelta(minutes=30))

        task.stop_timer(T0 + timedelta(minutes=30))
        assert not monitor.check(task, T0 + timedelta(minutes=31))
        assert not monitor.overtime

        task.start_timer(T0 + timedelta(minutes=40))
        assert monitor.check(task, T0 + timedelta(minutes=41))
        assert len(alerts) == 2
        assert account.burnout == pytest.approx(0.20)
