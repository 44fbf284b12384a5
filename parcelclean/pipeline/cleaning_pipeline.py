"""CleaningPipeline: runs an ordered list of cleaning passes over one frame.

The order is validated when the pipeline is built (OrderingViolationError),
the frame handed in is never modified, and every pass's findings and
reports are kept on the result for review.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from parcelclean.conf import CleaningConf
from parcelclean.schema import REQUIRED_RAW_COLUMNS

from .pass_func import CleaningPass, collect_passes
from .pass_order import check_columns_present, validate_pass_order
from .pass_result import Finding, PassOutput, PassRun, count_by_pass, findings_frame

log = logging.getLogger("parcelclean.pipeline")


@dataclass
class PipelineResult:
    df: pd.DataFrame
    runs: List[PassRun] = field(default_factory=list)

    @property
    def findings(self) -> List[Finding]:
        return [f for run in self.runs for f in run.findings]

    def findings_df(self) -> pd.DataFrame:
        return findings_frame(self.findings)

    def report_for(self, pass_name: str) -> Optional[Any]:
        for run in self.runs:
            if run.name == pass_name:
                return run.report
        raise KeyError(f"No pass named '{pass_name}' ran")

    def parse_failure_counts(self) -> Dict[str, int]:
        return count_by_pass(self.runs)


def _execute_pass(cp: CleaningPass, df: pd.DataFrame, conf) -> Tuple[PassRun, pd.DataFrame]:
    """Execute a single pass and record what it did.

    Passes may return a bare DataFrame or a PassOutput.
    """
    check_columns_present(cp, df.columns)
    result = cp.func(df, conf)
    if isinstance(result, pd.DataFrame):
        result = PassOutput(df=result)
    elif not isinstance(result, PassOutput):
        raise TypeError(f"Pass '{cp.name}' returned {type(result).__name__}, "
                        f"expected DataFrame or PassOutput")

    before, after = list(df.columns), list(result.df.columns)
    run = PassRun(
        name=cp.name,
        rows=len(result.df),
        columns_added=tuple(c for c in after if c not in before),
        columns_removed=tuple(c for c in before if c not in after),
        findings=list(result.findings),
        report=result.report,
    )
    return run, result.df


class CleaningPipeline:
    """Runs cleaning passes in their listed order.

    Usage::

        pipeline = CleaningPipeline(DEFAULT_PASSES)
        result = pipeline.run(raw_df)
        result.df            # cleaned frame
        result.findings_df() # parse failures and imputation conflicts
    """

    def __init__(self, passes: list, conf=CleaningConf,
                 initial_columns=REQUIRED_RAW_COLUMNS):
        self.passes: List[CleaningPass] = collect_passes(passes)
        self.conf = conf
        self.initial_columns = tuple(initial_columns)
        names = [cp.name for cp in self.passes]
        if len(set(names)) != len(names):
            raise ValueError(f"Pass names must be unique, got {names}")
        validate_pass_order(self.passes, self.initial_columns)

    def run(self, df: pd.DataFrame) -> PipelineResult:
        runs: List[PassRun] = []
        current = df
        log.info("Cleaning %d records through %d passes", len(df), len(self.passes))
        for cp in self.passes:
            run, current = _execute_pass(cp, current, self.conf)
            runs.append(run)
            log.info("%s: %d rows, added=%s removed=%s findings=%d",
                     cp.name, run.rows, list(run.columns_added),
                     list(run.columns_removed), len(run.findings))
        return PipelineResult(df=current, runs=runs)

    def explain(self, pass_name: str) -> str:
        """Return a human-readable description of a pass's column contract."""
        for cp in self.passes:
            if cp.name == pass_name:
                break
        else:
            raise KeyError(f"No pass named '{pass_name}'")

        lines = [f"CleaningPass: {cp.name}"]
        if cp.description:
            lines.append(f"  {cp.description}")
        lines.append(f"  requires: {', '.join(cp.requires) or 'none'}")
        lines.append(f"  provides: {', '.join(cp.provides) or 'none'}")
        lines.append(f"  drops: {', '.join(cp.drops) or 'none'}")
        return '\n'.join(lines)
