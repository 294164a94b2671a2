"""Teardown planning, execution and reporting."""

from .coordinator import TeardownCoordinator, normalize_regions, teardown
from .planner import TeardownPlan, TeardownPlanner

__all__ = [
    "TeardownCoordinator",
    "TeardownPlan",
    "TeardownPlanner",
    "normalize_regions",
    "teardown",
]
