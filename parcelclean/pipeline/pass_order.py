"""Ordering checks for cleaning passes.

Passes run in the order they are listed. A list is valid when every column
a pass requires is present at that point: either in the starting schema or
provided by an earlier pass, and not dropped by one.
"""
from __future__ import annotations

import graphlib
from typing import Dict, Iterable, List, Optional, Set

from .pass_func import CleaningPass


class OrderingViolationError(Exception):
    """Raised when a pass would run before the pass it depends on.

    This is fatal for the invocation: running the pass anyway would either
    fail or destroy data a later pass still needs.
    """
    pass


def build_pass_dag(passes: List[CleaningPass]) -> Dict[str, Set[str]]:
    """Map each pass name to the names of the passes that must run first.

    A pass depends on the passes that provide its required columns, and a
    pass that drops a column depends on every other pass that reads it.
    """
    provided_by: Dict[str, str] = {}
    for cp in passes:
        for col in cp.provides:
            provided_by[col] = cp.name

    graph: Dict[str, Set[str]] = {cp.name: set() for cp in passes}
    for cp in passes:
        for col in cp.requires:
            provider = provided_by.get(col)
            if provider is not None and provider != cp.name:
                graph[cp.name].add(provider)
        for col in cp.drops:
            for other in passes:
                if other.name != cp.name and col in other.requires:
                    graph[cp.name].add(other.name)
    return graph


def suggested_order(passes: List[CleaningPass]) -> List[str]:
    """A topological order of the passes, ties kept in listed order."""
    graph = build_pass_dag(passes)
    ts = graphlib.TopologicalSorter(graph)
    listed = {cp.name: i for i, cp in enumerate(passes)}
    try:
        ts.prepare()
    except graphlib.CycleError as e:
        raise OrderingViolationError(f"Cycle detected between passes: {e.args[1]}") from e
    order: List[str] = []
    while ts.is_active():
        ready = sorted(ts.get_ready(), key=listed.__getitem__)
        order.extend(ready)
        ts.done(*ready)
    return order


def _missing_for(cp: CleaningPass, available: Set[str]) -> Optional[str]:
    for col in cp.requires:
        if col not in available:
            return col
    return None


def validate_pass_order(
    passes: List[CleaningPass],
    initial_columns: Iterable[str],
) -> None:
    """Walk the passes in listed order, tracking which columns exist.

    Raises:
        OrderingViolationError: naming the first pass whose requirement is
            not met and the order that would satisfy it
    """
    available = set(initial_columns)
    for cp in passes:
        missing = _missing_for(cp, available)
        if missing is not None:
            raise OrderingViolationError(
                f"'{cp.name}' requires column '{missing}' which is not available "
                f"at that point; a valid order is: {', '.join(suggested_order(passes))}"
            )
        available.update(cp.provides)
        available.difference_update(cp.drops)


def check_columns_present(cp: CleaningPass, columns: Iterable[str]) -> None:
    """Run-time guard: the frame handed to ``cp`` has its required columns."""
    missing = [c for c in cp.requires if c not in set(columns)]
    if missing:
        raise OrderingViolationError(
            f"'{cp.name}' requires columns {missing} which are absent from the frame"
        )
