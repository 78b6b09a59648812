"""Operations (listing, planning, execution, discovery)"""
from .listing import list_local_tree, list_remote_tree
from .planner import make_plan
from .executor import ExecutionOutcome, execute_plan
from .discovery import discover

__all__ = [
    "list_local_tree", "list_remote_tree",
    "make_plan",
    "ExecutionOutcome", "execute_plan",
    "discover",
]
