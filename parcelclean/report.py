"""Post-cleaning report.

build_report only reads: it never changes the frame or the pipeline result.
report_to_json is the single place the report becomes text.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

import pandas as pd

from parcelclean.analytics import (
    OutlierReport, PriceStats, QualityAssessment, city_price_summary,
    iqr_outliers, price_statistics,
)
from parcelclean.conf import CleaningConf
from parcelclean.duplicates import DuplicateReport, count_duplicate_groups
from parcelclean.pipeline import ImputationConflict, PipelineResult
from parcelclean.schema import LAND_USE, PARCEL_ID, SOLD_AS_VACANT
from parcelclean.serialization_utils import dumps


@dataclass(frozen=True)
class ColumnCompleteness:
    total: int
    non_null: int
    nulls: int


@dataclass(frozen=True)
class FinalSummary:
    record_count: int
    distinct_land_uses: int
    distinct_parcels: int
    prices: PriceStats


@dataclass
class CleaningReport:
    completeness: Dict[str, ColumnCompleteness]
    vacant_distribution: Dict[Any, int]
    remaining_duplicate_groups: int
    summary: FinalSummary
    outliers: OutlierReport
    city_prices: pd.DataFrame
    parse_failures: Dict[str, int] = field(default_factory=dict)
    imputation_conflicts: int = 0
    duplicates: Optional[DuplicateReport] = None
    quality_before: Optional[QualityAssessment] = None


def column_completeness(df: pd.DataFrame) -> Dict[str, ColumnCompleteness]:
    total = len(df)
    non_null = df.notna().sum()
    return {
        str(col): ColumnCompleteness(total=total, non_null=int(non_null[col]),
                                     nulls=total - int(non_null[col]))
        for col in df.columns
    }


def vacant_distribution(df: pd.DataFrame) -> Dict[Any, int]:
    counts = df[SOLD_AS_VACANT].value_counts(dropna=False)
    return {(None if pd.isna(k) else k): int(v) for k, v in counts.items()}


def final_summary(df: pd.DataFrame) -> FinalSummary:
    return FinalSummary(
        record_count=len(df),
        distinct_land_uses=int(df[LAND_USE].nunique()),
        distinct_parcels=int(df[PARCEL_ID].nunique()),
        prices=price_statistics(df),
    )


def build_report(df: pd.DataFrame, result: Optional[PipelineResult] = None,
                 conf=CleaningConf,
                 quality_before: Optional[QualityAssessment] = None) -> CleaningReport:
    """Summarize a cleaned frame, and the run that produced it when given."""
    report = CleaningReport(
        completeness=column_completeness(df),
        vacant_distribution=vacant_distribution(df),
        remaining_duplicate_groups=count_duplicate_groups(df, conf.remaining_duplicate_key),
        summary=final_summary(df),
        outliers=iqr_outliers(df, conf.iqr_multiplier),
        city_prices=city_price_summary(df),
        quality_before=quality_before,
    )
    if result is not None:
        report.parse_failures = result.parse_failure_counts()
        report.imputation_conflicts = sum(
            1 for f in result.findings if isinstance(f, ImputationConflict))
        for run in result.runs:
            if isinstance(run.report, DuplicateReport):
                report.duplicates = run.report
    return report


def report_to_dict(report: CleaningReport) -> Dict[str, Any]:
    dct = asdict(report)
    if report.duplicates is not None:
        dct["duplicates"] = {
            "key_columns": list(report.duplicates.key_columns),
            "group_count": report.duplicates.group_count,
            # unique_id, dup_group, dup_rank of every record after the first in its group
            "flagged": report.duplicates.flagged.to_dict(orient="records"),
            "groups": [
                {"key": list(g.key), "unique_ids": list(g.unique_ids), "flagged": list(g.flagged)}
                for g in report.duplicates.groups
            ],
        }
    return dct


def report_to_json(report: CleaningReport, indent: int = 2) -> str:
    return dumps(report_to_dict(report), indent=indent)
