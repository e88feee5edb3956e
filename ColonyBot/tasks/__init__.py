"""
ColonyBot.tasks — per-unit task resolution, continuity and execution.

Public API
----------
    from ColonyBot.tasks import Task, TaskFinder, FinderContext
    from ColonyBot.tasks import finder_registry, TaskSelector
    from ColonyBot.tasks.finders import register_finders
"""

from ColonyBot.tasks.continuity import resolve_destination
from ColonyBot.tasks.executor import ActionExecutor
from ColonyBot.tasks.finder import FinderContext, FinderRegistry, TaskFinder, finder_registry
from ColonyBot.tasks.task import Task
from ColonyBot.tasks.task_selector import TaskSelector

__all__ = [
    "ActionExecutor",
    "FinderContext",
    "FinderRegistry",
    "Task",
    "TaskFinder",
    "TaskSelector",
    "finder_registry",
    "resolve_destination",
]
