"""
ForgeFlow — burnout-aware focus & progression engine.
Headless entry point: runs one Pomodoro cycle loop for a task on the Qt event loop.

Usage: python main.py ["Task title"]
"""

import faulthandler
import logging
import signal
import sys
from pathlib import Path

faulthandler.enable()

# Ensure forgeflow is importable when run from a checkout
sys.path.insert(0, str(Path(__file__).resolve().parent))

from PySide6.QtCore import QCoreApplication

from forgeflow.config import EngineSettings
from forgeflow.data.database import Database
from forgeflow.data.repository import Repository
from forgeflow.engine.clock import SystemClock
from forgeflow.engine.focus import FocusSession
from forgeflow.ml.predictor import FocusPredictor
from forgeflow.services.quest_service import QuestService
from forgeflow.services.recharge_service import RechargeService
from forgeflow.services.ticker import QtTicker


def setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("forgeflow.log", encoding="utf-8"),
        ],
    )


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting ForgeFlow...")

    settings = EngineSettings()
    clock = SystemClock()

    db = Database(settings.db_path)
    repo = Repository(db.connect())
    account = repo.get_or_create_account(clock.now(), settings.policy)

    recharge = RechargeService(repo, account, clock)
    recharge.run_daily_maintenance()
    quests = QuestService(repo, account, clock)

    task = None
    if len(sys.argv) > 1:
        task = quests.create_task(sys.argv[1])
        quests.start_task_timer(task)

    app = QCoreApplication(sys.argv)
    app.setApplicationName("ForgeFlow")

    session = FocusSession(
        account, clock, settings.focus, task=task,
        on_session_logged=lambda name, span: repo.add_work_session(name, span, clock.now()),
        on_task_completed=repo.save_task,
    )
    ticker = QtTicker(session, settings.tick_interval_ms, settings.auto_start_delay_ms)
    ticker.phase_changed.connect(lambda _change: repo.save_account(account))
    ticker.overtime.connect(
        lambda alert: logger.warning("Overtime on %r (+%s)", alert.title, alert.overrun)
    )

    def shutdown(*_args) -> None:
        ticker.stop()
        if task is not None:
            quests.stop_task_timer(task)
        repo.save_account(account)
        db.close()
        app.quit()

    signal.signal(signal.SIGINT, shutdown)

    session.start()
    ticker.start()
    logger.info(
        "Level %d | XP %d/%d | burnout %.0f%% (%s)",
        account.level, account.current_xp, account.xp_to_next_level,
        account.burnout * 100, account.burnout_status.label,
    )
    predictor = FocusPredictor(repo, clock)
    suggested = predictor.suggest_focus_minutes()
    logger.info(
        "Focused %.0f min today | suggested block: %s",
        predictor.today_focus_minutes(),
        f"{suggested} min" if suggested is not None else "not enough sessions yet",
    )
    sys.exit(app.exec())


if __name__ == "__main__":
    main()


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Wires everything together: settings → database → account → services →
#   focus session → Qt ticker, logs today's focus total and a suggested block
#   length, then hands control to the Qt event loop.
#
# Key points:
#   - One ProgressionAccount instance is created here and passed to every
#     component that needs it, instead of each one fetching "the first
#     account" on its own.
#   - QCoreApplication (not QApplication): there is no window, only timers.
#   - Ctrl+C flushes the running task timer and saves before quitting.
