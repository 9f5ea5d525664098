from .clock import Clock, ManualClock, SystemClock
from .errors import ForgeFlowError, PersistenceFailure
from .focus import FocusConfig, FocusSession, FocusState, Phase
from .overtime import OvertimeAlert, OvertimeMonitor
from .progression import BurnoutPolicy, BurnoutStatus, ProgressionAccount, XPAward
from .quests import Difficulty, Subtask, Task

__all__ = [
    "Clock", "ManualClock", "SystemClock",
    "ForgeFlowError", "PersistenceFailure",
    "FocusConfig", "FocusSession", "FocusState", "Phase",
    "OvertimeAlert", "OvertimeMonitor",
    "BurnoutPolicy", "BurnoutStatus", "ProgressionAccount", "XPAward",
    "Difficulty", "Subtask", "Task",
]
