"""Core types for cleaning passes.

CleaningPass and the @cleaning_pass decorator.

A pass is a plain function ``func(df, conf)`` that returns either a new
DataFrame or a PassOutput. The decorator records the column contract:
  - requires: columns the pass reads
  - provides: columns the pass adds
  - drops: columns the pass removes
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Tuple


@dataclass(frozen=True)
class CleaningPass:
    """A registered cleaning pass.

    Attributes:
        name: identifier for this pass, the decorated function's name
        func: the actual callable
        requires: columns that must exist before the pass runs
        provides: columns the pass adds to the frame
        drops: columns the pass removes from the frame
        description: first line of the function docstring
    """
    name: str
    func: Callable
    requires: Tuple[str, ...]
    provides: Tuple[str, ...] = ()
    drops: Tuple[str, ...] = ()
    description: str = ""

    def __repr__(self):
        return f"CleaningPass({self.name!r})"


def _first_doc_line(func) -> str:
    doc = (func.__doc__ or "").strip()
    return doc.splitlines()[0] if doc else ""


def cleaning_pass(requires=(), provides=(), drops=()):
    """Decorator that registers a function as a CleaningPass.

    Usage::

        @cleaning_pass(requires=(SOLD_AS_VACANT,))
        def normalize_vacant_flags(df, conf=CleaningConf):
            ...

    The function stays directly callable; the pipeline finds the pass
    through the ``_cleaning_pass`` attribute.
    """
    def decorator(func):
        func._cleaning_pass = CleaningPass(
            name=func.__name__,
            func=func,
            requires=tuple(requires),
            provides=tuple(provides),
            drops=tuple(drops),
            description=_first_doc_line(func),
        )
        return func

    return decorator


def collect_passes(objs) -> List[CleaningPass]:
    """Convert a list of CleaningPass objects and @cleaning_pass functions."""
    passes = []
    for obj in objs:
        if isinstance(obj, CleaningPass):
            passes.append(obj)
        elif callable(obj) and hasattr(obj, '_cleaning_pass'):
            passes.append(obj._cleaning_pass)
        else:
            raise TypeError(
                f"Cannot convert {obj!r} to CleaningPass. Expected CleaningPass "
                f"or @cleaning_pass-decorated function."
            )
    return passes
