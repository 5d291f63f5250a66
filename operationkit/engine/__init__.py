"""Engine primitives: steps, run context, executor and result."""

from operationkit.engine.context import RunContext
from operationkit.engine.executor import (
    DefaultStepRecorder,
    NullStepRecorder,
    PipelineExecutor,
    RunState,
    StepRecorder,
    utc_now_iso8601,
)
from operationkit.engine.result import FailureReason, Result, ResultStatus
from operationkit.engine.steps import (
    OperationDefinition,
    OperationDefinitionError,
    Step,
    StepFailure,
    Track,
    both,
    fail,
    step,
)

__all__ = [
    "DefaultStepRecorder",
    "FailureReason",
    "NullStepRecorder",
    "OperationDefinition",
    "OperationDefinitionError",
    "PipelineExecutor",
    "Result",
    "ResultStatus",
    "RunContext",
    "RunState",
    "Step",
    "StepFailure",
    "StepRecorder",
    "Track",
    "both",
    "fail",
    "step",
    "utc_now_iso8601",
]
