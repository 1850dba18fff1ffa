"""Planner interface and the strategy registry."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..backends.base import SourceDocument
from ..config import SplitSettings
from ..exceptions import UnsupportedStrategyError
from ..models import SplitRequest, SplitStrategy
from ..types import PageRange, Partition, SplitPlan
from ..utils import base_name, render_file_name


class Planner:
    """Turns a loaded document and a request into an ordered :class:`SplitPlan`.

    Planners never write anything. Errors raised here abort an operation
    before the executor touches the output path.
    """

    strategy: SplitStrategy
    default_pattern: Optional[str] = None

    def __init__(self, settings: Optional[SplitSettings] = None) -> None:
        self.settings = settings or SplitSettings()

    def plan(self, document: SourceDocument, request: SplitRequest) -> SplitPlan:
        raise NotImplementedError

    def file_name(
        self,
        request: SplitRequest,
        *,
        index: int,
        selection: Sequence[PageRange],
        default: Optional[str] = None,
        title: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> str:
        original = base_name(request.original_filename)
        pattern = request.file_name_pattern or (None if default else self.default_pattern)
        return render_file_name(
            pattern,
            default=default or f"{original}_{index}.pdf",
            original=original,
            index=index,
            selection=selection,
            title=title,
            kind=kind,
        )

    def build_plan(
        self,
        document: SourceDocument,
        request: SplitRequest,
        partitions: List[Partition],
    ) -> SplitPlan:
        return SplitPlan(
            strategy=self.strategy.value,
            partitions=partitions,
            original_filename=request.original_filename,
            total_pages=document.total_page_count,
            preserve_bookmarks=request.preserve_bookmarks,
            preserve_metadata=request.preserve_metadata,
        )


class PlannerRegistry:
    """Registry mapping each :class:`SplitStrategy` to its planner class."""

    def __init__(self) -> None:
        self._planners: Dict[SplitStrategy, type[Planner]] = {}

    def register(self, strategy: SplitStrategy, planner_class: type[Planner]) -> None:
        if strategy in self._planners:
            raise ValueError(f"Planner for '{strategy.value}' is already registered")
        planner_class.strategy = strategy
        self._planners[strategy] = planner_class

    def get(self, strategy: SplitStrategy) -> type[Planner] | None:
        return self._planners.get(strategy)

    def create(self, strategy: SplitStrategy, settings: Optional[SplitSettings] = None, **options: Any) -> Planner:
        planner_class = self.get(strategy)
        if planner_class is None:
            raise UnsupportedStrategyError(
                f"No planner registered for strategy '{strategy}'",
                strategy=str(getattr(strategy, "value", strategy)),
            )
        return planner_class(settings, **options)

    def strategies(self) -> Iterable[SplitStrategy]:
        return list(self._planners.keys())


registry = PlannerRegistry()


def register_planner(strategy: SplitStrategy):
    def decorator(cls: type[Planner]) -> type[Planner]:
        registry.register(strategy, cls)
        return cls

    return decorator


__all__ = ["Planner", "PlannerRegistry", "registry", "register_planner"]
