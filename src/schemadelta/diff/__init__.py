"""
Snapshot comparison, action ordering and in-memory replay.
"""

from .engine import DiffEngine, cyclic_foreign_keys, diff
from .replay import apply_action, apply_actions, apply_statements
from .sorter import ActionSorter, sort_actions

__all__ = [
    "ActionSorter",
    "DiffEngine",
    "apply_action",
    "apply_actions",
    "apply_statements",
    "cyclic_foreign_keys",
    "diff",
    "sort_actions",
]
