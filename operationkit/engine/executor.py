"""Railway executor for operation definitions.

This module is intentionally app-agnostic: it knows nothing about the models,
contracts or policies a step touches. It only walks the step list, switches
tracks, and turns the final context into a Result.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Protocol

from ..config import ExecutorConfig
from .context import RunContext
from .result import FailureReason, Result
from .steps import OperationDefinition, Step, StepFailure

logger = logging.getLogger(__name__)


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class RunState(str, Enum):
    RUNNING_SUCCESS = "running-success-track"
    RUNNING_FAILURE = "running-failure-track"
    TERMINATED = "terminated"


class StepRecorder(Protocol):
    def on_step_start(self, ctx: RunContext, path: str, **metrics: Any) -> None:
        ...

    def on_step_end(self, ctx: RunContext, record: dict[str, Any]) -> None:
        ...

    def on_step_error(self, ctx: RunContext, path: str, step_name: str, exc: Exception) -> None:
        ...


class DefaultStepRecorder:
    def on_step_start(self, ctx: RunContext, path: str, **metrics: Any) -> None:
        tokens: list[str] = []
        track = metrics.get("track")
        if isinstance(track, str) and track.strip():
            tokens.append(f"track={track.strip()}")
        state = metrics.get("state")
        if isinstance(state, str) and state.strip():
            tokens.append(f"state={state.strip()}")
        source = metrics.get("source")
        if isinstance(source, str) and source.strip():
            tokens.append(f"source={source.strip()}")

        if tokens:
            ctx.logger.info("Step: %s (%s)", path, ", ".join(tokens))
        else:
            ctx.logger.info("Step: %s", path)

    def on_step_end(self, ctx: RunContext, record: dict[str, Any]) -> None:
        path = record.get("path", "<unknown>")
        if record.get("switched"):
            fields = ", ".join(sorted(ctx.errors)) or "<none>"
            ctx.logger.info(
                "Switched to failure track at %s (reason=%s, fields=%s)",
                path,
                record.get("reason"),
                fields,
            )
            return
        if record.get("outcome") == "failure":
            ctx.logger.info("Completed step %s (outcome=failure)", path)
            return
        ctx.logger.info("Completed step %s", path)

    def on_step_error(self, ctx: RunContext, path: str, step_name: str, exc: Exception) -> None:
        ctx.logger.error("Step failed: %s (%s)", path, exc)


class NullStepRecorder:
    def on_step_start(self, ctx: RunContext, path: str, **metrics: Any) -> None:
        return

    def on_step_end(self, ctx: RunContext, record: dict[str, Any]) -> None:
        return

    def on_step_error(self, ctx: RunContext, path: str, step_name: str, exc: Exception) -> None:
        return


def recorder_for(config: ExecutorConfig) -> StepRecorder:
    if config.recorder == "null":
        return NullStepRecorder()
    return DefaultStepRecorder()


class PipelineExecutor:
    """Runs an OperationDefinition against a fresh RunContext.

    The executor holds no per-run state, so one instance may serve any number of
    concurrent invocations.
    """

    def __init__(
        self,
        *,
        config: ExecutorConfig | None = None,
        recorder: StepRecorder | None = None,
        run_logger: logging.Logger | None = None,
    ):
        self._config = config or ExecutorConfig()
        self._recorder = recorder or recorder_for(self._config)
        self._validate_recorder(self._recorder)
        self._run_logger = run_logger

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    def run(
        self,
        definition: OperationDefinition,
        params: Mapping[str, Any] | None = None,
        actor: Any = None,
    ) -> Result:
        if not isinstance(definition, OperationDefinition):
            raise TypeError(
                f"run expects an OperationDefinition (type={type(definition).__name__})"
            )
        ctx = RunContext.create(
            params,
            actor=actor,
            operation=definition.name,
            logger=self._run_logger,
        )
        self.execute(definition, ctx)
        return self.build_result(ctx)

    def execute(self, definition: OperationDefinition, ctx: RunContext) -> RunState:
        state = RunState.RUNNING_SUCCESS

        for index, item in enumerate(definition.steps):
            if state is RunState.RUNNING_SUCCESS and not item.track.runs_on_success():
                continue
            if state is RunState.RUNNING_FAILURE and not item.track.runs_on_failure():
                continue

            path = f"{definition.name}/{item.name}"
            # Recorder hooks count as part of the step: their faults take the same path.
            try:
                outcome = self._execute_step(ctx, item, path=path, state=state)
                failure = self._as_failure(ctx, outcome, state=state)
                switched = False
                if failure is not None:
                    ctx.merge_errors(failure.errors)
                    if state is RunState.RUNNING_SUCCESS:
                        ctx.failed = True
                        ctx.reason = failure.reason
                        ctx.failed_step = item.name
                        state = RunState.RUNNING_FAILURE
                        switched = True
                self._record_end(ctx, item, path, failed=failure is not None, switched=switched)
            except Exception as exc:
                self._run_fatal_cleanup(definition, ctx, start=index + 1)
                self._attach_pipeline_error(
                    exc, operation_name=definition.name, step=item, pipeline_path=path, state=state
                )
                raise

            if item.fail_fast and state is RunState.RUNNING_FAILURE:
                ctx.logger.debug("Fail-fast step %s terminated the failure track", path)
                break

        return RunState.TERMINATED

    def build_result(self, ctx: RunContext) -> Result:
        errors = {key: list(messages) for key, messages in ctx.errors.items() if messages}
        common: dict[str, Any] = {
            "model": ctx.model,
            "operation": ctx.operation,
            "extras": dict(ctx.extras),
            "trace": ctx.executed_steps(),
        }
        if ctx.failed or errors:
            return Result.failed(
                errors,
                reason=ctx.reason or FailureReason.VALIDATION,
                failed_step=ctx.failed_step,
                **common,
            )
        return Result.succeeded(**common)

    def _execute_step(self, ctx: RunContext, item: Step, *, path: str, state: RunState) -> Any:
        source = item.meta.get("source") or self._callable_source(item.action)
        self._recorder.on_step_start(
            ctx,
            path,
            track=item.track.value,
            state=state.value,
            source=source,
            doc=item.meta.get("doc"),
        )
        try:
            return item.action(ctx)
        except Exception as exc:
            try:
                self._recorder.on_step_error(ctx, path, item.name, exc)
            except Exception:
                ctx.logger.exception("Step recorder failed during error handling for %s", path)
            raise

    def _record_end(self, ctx: RunContext, item: Step, path: str, *, failed: bool, switched: bool) -> None:
        record: dict[str, Any] = {
            "name": item.name,
            "path": path,
            "track": item.track.value,
            "outcome": "failure" if failed else "success",
            "created_at": utc_now_iso8601(),
        }
        if switched:
            record["switched"] = True
            record["reason"] = ctx.reason.value if ctx.reason else None
        ctx.trace.append(record)
        self._recorder.on_step_end(ctx, record)

    def _as_failure(self, ctx: RunContext, outcome: Any, *, state: RunState) -> StepFailure | None:
        if isinstance(outcome, StepFailure):
            return outcome
        if outcome is False:
            return StepFailure(reason=FailureReason.EXPLICIT)
        # A success-track step that populated ctx.errors directly still fails the run.
        if state is RunState.RUNNING_SUCCESS and ctx.has_errors():
            return StepFailure(reason=FailureReason.VALIDATION)
        return None

    def _run_fatal_cleanup(self, definition: OperationDefinition, ctx: RunContext, *, start: int) -> None:
        for item in definition.steps[start:]:
            if not item.on_fatal:
                continue
            path = f"{definition.name}/{item.name}"
            ctx.logger.warning("Running fatal cleanup step %s", path)
            try:
                item.action(ctx)
            except Exception:
                ctx.logger.exception("Fatal cleanup step %s raised; continuing with fault", path)
                continue
            ctx.trace.append(
                {
                    "name": item.name,
                    "path": path,
                    "track": item.track.value,
                    "outcome": "fatal_cleanup",
                    "created_at": utc_now_iso8601(),
                }
            )

    def _callable_source(self, fn: Any) -> str | None:
        if not callable(fn):
            return None
        module = getattr(fn, "__module__", None) or "<unknown_module>"
        qualname = (
            getattr(fn, "__qualname__", None)
            or getattr(fn, "__name__", None)
            or "<callable>"
        )
        return f"{module}.{qualname}"

    def _validate_recorder(self, recorder: StepRecorder) -> None:
        required = ("on_step_start", "on_step_end", "on_step_error")
        for name in required:
            method = getattr(recorder, name, None)
            if method is None or not callable(method):
                raise TypeError(f"Step recorder missing required method: {name}")

    def _attach_pipeline_error(
        self,
        exc: Exception,
        *,
        operation_name: str,
        step: Step,
        pipeline_path: str,
        state: RunState,
    ) -> None:
        attributes = {
            "operation_name": operation_name,
            "pipeline_step": step.name,
            "pipeline_path": pipeline_path,
            "pipeline_track": state.value,
        }
        for name, value in attributes.items():
            if hasattr(exc, name):
                continue
            try:
                setattr(exc, name, value)
            except (AttributeError, TypeError):
                logger.debug("Cannot attach %s to %s", name, type(exc).__name__)
