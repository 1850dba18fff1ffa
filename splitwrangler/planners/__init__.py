"""Split planners, one per :class:`~splitwrangler.models.SplitStrategy`.

Importing this package registers every built-in planner with :data:`registry`.
"""

from .base import Planner, PlannerRegistry, register_planner, registry
from .content import ContentAnalyzer, ContentAwarePlanner, HeuristicContentAnalyzer
from .file_size import SizeThresholdPlanner, estimate_page_sizes, partition_by_size
from .page_ranges import PageRangePlanner
from .sections import ChapterPlanner, SectionPlanner
from .selection import SelectionPlanner

__all__ = [
    "Planner",
    "PlannerRegistry",
    "register_planner",
    "registry",
    "PageRangePlanner",
    "SizeThresholdPlanner",
    "SectionPlanner",
    "ChapterPlanner",
    "ContentAwarePlanner",
    "SelectionPlanner",
    "ContentAnalyzer",
    "HeuristicContentAnalyzer",
    "estimate_page_sizes",
    "partition_by_size",
]
