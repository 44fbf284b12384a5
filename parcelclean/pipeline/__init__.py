from .pass_func import CleaningPass, cleaning_pass, collect_passes
from .pass_order import OrderingViolationError, validate_pass_order
from .pass_result import ImputationConflict, ParseFailure, PassOutput, PassRun
from .cleaning_pipeline import CleaningPipeline, PipelineResult

__all__ = [
    "CleaningPass", "cleaning_pass", "collect_passes",
    "OrderingViolationError", "validate_pass_order",
    "ImputationConflict", "ParseFailure", "PassOutput", "PassRun",
    "CleaningPipeline", "PipelineResult",
]
