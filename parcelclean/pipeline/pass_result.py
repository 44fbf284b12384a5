"""Result types for cleaning passes.

Two failure modes clearly distinguished:
  - Structural errors (SchemaMismatchError, OrderingViolationError) raised
    and fatal for the run
  - Data-quality findings (ParseFailure, ImputationConflict) accumulated
    per record and reported, never raised
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd


@dataclass(frozen=True)
class ParseFailure:
    """A composite address that did not split into the expected parts."""
    unique_id: int
    pass_name: str
    column: str
    value: Any
    reason: str


@dataclass(frozen=True)
class ImputationConflict:
    """A parcel whose sales carry more than one distinct address."""
    parcel_id: str
    addresses: Tuple[str, ...]
    chosen: str
    donor_unique_id: int


Finding = Any  # ParseFailure | ImputationConflict


@dataclass
class PassOutput:
    """What a pass hands back when it has more to say than the new frame."""
    df: pd.DataFrame
    findings: List[Finding] = field(default_factory=list)
    report: Optional[Any] = None


@dataclass
class PassRun:
    """Bookkeeping for one executed pass."""
    name: str
    rows: int
    columns_added: Tuple[str, ...]
    columns_removed: Tuple[str, ...]
    findings: List[Finding] = field(default_factory=list)
    report: Optional[Any] = None


def findings_frame(findings: List[Finding]) -> pd.DataFrame:
    """Flatten a list of finding records into a DataFrame, one row each."""
    if not findings:
        return pd.DataFrame()
    rows = []
    for f in findings:
        row = asdict(f)
        row['kind'] = type(f).__name__
        rows.append(row)
    return pd.DataFrame(rows)


def count_by_pass(runs: List[PassRun], kind=ParseFailure) -> Dict[str, int]:
    """Number of findings of ``kind`` per pass name, passes with none omitted."""
    counts: Dict[str, int] = {}
    for run in runs:
        n = sum(1 for f in run.findings if isinstance(f, kind))
        if n:
            counts[run.name] = n
    return counts
