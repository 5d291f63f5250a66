"""Railway-style operation pipelines (steps + contracts + policies + result).

This package is application-agnostic. Models, persistence and delivery belong to
the caller; an operation only sees them through the step callables it is built with.
"""

from operationkit.config import ExecutorConfig, Settings, configure_logging, load_settings
from operationkit.contract import (
    ContractRegistry,
    ContractSchema,
    FieldRule,
    contracts_from_mapping,
    inclusion,
    length,
    matches,
    numericality,
    presence,
    satisfies,
)
from operationkit.engine import (
    DefaultStepRecorder,
    FailureReason,
    NullStepRecorder,
    OperationDefinition,
    OperationDefinitionError,
    PipelineExecutor,
    Result,
    ResultStatus,
    RunContext,
    Step,
    StepFailure,
    StepRecorder,
    Track,
    both,
    fail,
    step,
)
from operationkit.macros import authorize_action, build_model, find_model, persist, sync_params, validate_contract
from operationkit.policy import Policy, PolicyDecision, authorize
from operationkit.registry import OperationRegistry, UnknownOperationError

__all__ = [
    "ContractRegistry",
    "ContractSchema",
    "DefaultStepRecorder",
    "ExecutorConfig",
    "FailureReason",
    "FieldRule",
    "NullStepRecorder",
    "OperationDefinition",
    "OperationDefinitionError",
    "OperationRegistry",
    "PipelineExecutor",
    "Policy",
    "PolicyDecision",
    "Result",
    "ResultStatus",
    "RunContext",
    "Settings",
    "Step",
    "StepFailure",
    "StepRecorder",
    "Track",
    "UnknownOperationError",
    "authorize",
    "authorize_action",
    "both",
    "build_model",
    "configure_logging",
    "contracts_from_mapping",
    "fail",
    "find_model",
    "inclusion",
    "length",
    "load_settings",
    "matches",
    "numericality",
    "persist",
    "presence",
    "satisfies",
    "step",
    "sync_params",
    "validate_contract",
]
