"""Workflow package: orchestrator, scheduler, phase/progress rules, callbacks."""

from workflow.graph import (
    GenerationOrchestrator,
    GenerationRequest,
    StepOutcome,
    CoverOutcome,
)
from workflow.state import BookRunState
from workflow.conditions import (
    COVER_ATTEMPT_LIMIT,
    can_retry_cover,
    derive_phase,
    missing_chapter_numbers,
    route_after_derive,
    route_after_step,
)
from workflow.scheduler import BatchScheduler, plan_batches
from workflow.progress import ProgressSnapshot, ProgressTracker, compute_progress
from workflow.failures import FailureKind, FailureReport, classify
from workflow.cancellation import CancellationToken
from workflow.callbacks import CallbackGroup, GenerationCallback, LoggingCallback, RichProgressCallback

__all__ = [
    "GenerationOrchestrator",
    "GenerationRequest",
    "StepOutcome",
    "CoverOutcome",
    "BookRunState",
    "COVER_ATTEMPT_LIMIT",
    "can_retry_cover",
    "derive_phase",
    "missing_chapter_numbers",
    "route_after_derive",
    "route_after_step",
    "BatchScheduler",
    "plan_batches",
    "ProgressSnapshot",
    "ProgressTracker",
    "compute_progress",
    "FailureKind",
    "FailureReport",
    "classify",
    "CancellationToken",
    "CallbackGroup",
    "GenerationCallback",
    "LoggingCallback",
    "RichProgressCallback",
]
