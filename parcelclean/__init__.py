"""Cleaning pipeline for housing sales records."""
from parcelclean.analytics import assess_quality
from parcelclean.conf import CleaningConf
from parcelclean.data_loading import load_file, load_frame, load_table, write_file, write_table
from parcelclean.passes import PD_CLEANING_PASSES
from parcelclean.pipeline import CleaningPipeline, OrderingViolationError, PipelineResult
from parcelclean.report import CleaningReport, build_report, report_to_json
from parcelclean.schema import SchemaMismatchError, conform_raw_frame

__version__ = "0.1.0"


def clean(raw_df, conf=CleaningConf):
    """Run every cleaning pass over a RAW frame and report on the outcome.

    The frame is conformed first, so published headers are accepted and
    missing columns raise SchemaMismatchError before any pass runs.
    Returns (PipelineResult, CleaningReport).
    """
    raw_df = conform_raw_frame(raw_df)
    quality = assess_quality(raw_df)
    result = CleaningPipeline(PD_CLEANING_PASSES, conf=conf).run(raw_df)
    return result, build_report(result.df, result, conf=conf, quality_before=quality)


__all__ = [
    "CleaningConf", "CleaningPipeline", "CleaningReport", "OrderingViolationError",
    "PD_CLEANING_PASSES", "PipelineResult", "SchemaMismatchError",
    "assess_quality", "build_report", "clean", "load_file", "load_frame",
    "load_table", "report_to_json", "write_file", "write_table",
]
