"""Timer system — models, registry, execution, and scheduling."""

from tabtimer.timers.engine import ExecutionEngine, FiringResult
from tabtimer.timers.models import ActionKind, Persistence, Timer, TimerStatus, UrlBehavior
from tabtimer.timers.scheduler import SchedulerLoop
from tabtimer.timers.store import TimerStore
from tabtimer.timers.watcher import TabWatcher

__all__ = [
    "ActionKind",
    "ExecutionEngine",
    "FiringResult",
    "Persistence",
    "SchedulerLoop",
    "TabWatcher",
    "Timer",
    "TimerStatus",
    "TimerStore",
    "UrlBehavior",
]
