"""Reusable step builders for the common shape of an operation.

These helpers are generic (no application models): they return ordinary `Step`
values, so an operation can mix them freely with hand-written steps.

    OperationDefinition.build(
        "company.create",
        [
            build_model(Company),
            authorize_action(company_policy, "create"),
            validate_contract(company_contract, scope="create"),
            sync_params("name"),
            persist(repository.save),
        ],
    )
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from operationkit.config import ExecutorConfig
from operationkit.contract import ContractSchema
from operationkit.engine.context import RunContext
from operationkit.engine.result import FailureReason
from operationkit.engine.steps import Step, StepFailure
from operationkit.policy import Policy, authorize

_DEFAULT_CONFIG = ExecutorConfig()


def _step_name(name: str | None, default: str) -> str:
    if name is None:
        return default
    if not isinstance(name, str) or not name.strip():
        raise TypeError("name must be a non-empty string")
    return name.strip()


def build_model(
    factory: Callable[[], Any],
    *,
    name: str | None = None,
    meta: dict[str, Any] | None = None,
) -> Step:
    """Step: construct a fresh model and place it on `ctx.model`."""

    if not callable(factory):
        raise TypeError(f"factory must be callable (type={type(factory).__name__})")

    def _build(ctx: RunContext) -> None:
        ctx.model = factory()

    return Step(
        name=_step_name(name, "model.build"),
        action=_build,
        meta={"doc": "Construct a new model", **(meta or {})},
    )


def find_model(
    finder: Callable[[Any], Any],
    *,
    key: str = "id",
    name: str | None = None,
    config: ExecutorConfig | None = None,
) -> Step:
    """Step: load a model by `ctx.params[key]`; a miss fails with a base-level error."""

    if not callable(finder):
        raise TypeError(f"finder must be callable (type={type(finder).__name__})")
    cfg = config or _DEFAULT_CONFIG

    def _find(ctx: RunContext) -> StepFailure | None:
        identifier = ctx.params.get(key)
        model = finder(identifier) if identifier is not None else None
        if model is None:
            return StepFailure(
                errors={cfg.base_error_key: (cfg.not_found_message,)},
                reason=FailureReason.NOT_FOUND,
            )
        ctx.model = model
        return None

    return Step(
        name=_step_name(name, "model.find"),
        action=_find,
        meta={"doc": f"Find model by params[{key!r}]"},
    )


def validate_contract(
    schemas: ContractSchema | Sequence[ContractSchema],
    *,
    scope: str | None,
    name: str | None = None,
    key: str | None = None,
) -> Step:
    """Step: validate params against one or more schemas in `scope`.

    Every schema runs and all messages accumulate before the step decides. With
    `key`, the payload is the nested mapping `ctx.params[key]`.
    """

    resolved = (schemas,) if isinstance(schemas, ContractSchema) else tuple(schemas)
    if not resolved:
        raise ValueError("validate_contract needs at least one schema")
    for idx, schema in enumerate(resolved):
        if not isinstance(schema, ContractSchema):
            raise TypeError(f"schemas[{idx}] must be a ContractSchema (type={type(schema).__name__})")

    default_name = "contract." + "+".join(schema.name for schema in resolved)
    if scope:
        default_name += f".{scope}"

    def _validate(ctx: RunContext) -> StepFailure | None:
        payload: Any = ctx.params if key is None else ctx.params.get(key, {})
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            return StepFailure(
                errors={key or "params": ("must be a mapping",)},
                reason=FailureReason.VALIDATION,
            )

        errors: dict[str, list[str]] = {}
        for schema in resolved:
            for field_name, messages in schema.validate(payload, scope).items():
                errors.setdefault(field_name, []).extend(messages)

        ctx.extras["contract.errors"] = {k: list(v) for k, v in errors.items()}
        if errors:
            return StepFailure(
                errors={k: tuple(v) for k, v in errors.items()},
                reason=FailureReason.VALIDATION,
            )
        return None

    return Step(
        name=_step_name(name, default_name),
        action=_validate,
        meta={"doc": f"Validate params (scope={scope or '*'})"},
    )


def authorize_action(
    policy: Policy,
    action: str,
    *,
    subject: Callable[[RunContext], Any] | None = None,
    name: str | None = None,
    config: ExecutorConfig | None = None,
) -> Step:
    """Step: ask `policy` whether `ctx.actor` may perform `action` on the subject.

    The subject defaults to `ctx.model`. A deny becomes a base-level error.
    """

    if not isinstance(policy, Policy):
        raise TypeError(f"policy must be a Policy (type={type(policy).__name__})")
    if policy.rule_for(action) is None:
        raise ValueError(f"Policy {policy.name} has no rule for action {action!r}")
    cfg = config or _DEFAULT_CONFIG
    action_name = action.strip().rstrip("?")

    def _authorize(ctx: RunContext) -> StepFailure | None:
        target = subject(ctx) if subject is not None else ctx.model
        decision = authorize(policy, ctx.actor, target, action_name)
        ctx.extras[f"policy.{policy.name}.{action_name}"] = decision.value
        if decision.allowed:
            return None
        return StepFailure(
            errors={cfg.base_error_key: (cfg.denied_message,)},
            reason=FailureReason.AUTHORIZATION,
        )

    return Step(
        name=_step_name(name, f"policy.{policy.name}.{action_name}"),
        action=_authorize,
        meta={"doc": f"Authorize {action_name} via {policy.name}"},
    )


def sync_params(*fields: str, name: str | None = None, key: str | None = None) -> Step:
    """Step: copy the listed params that are present onto `ctx.model` attributes."""

    if not fields:
        raise ValueError("sync_params needs at least one field")

    def _sync(ctx: RunContext) -> None:
        if ctx.model is None:
            raise RuntimeError("sync_params ran before a model was set")
        source = ctx.params if key is None else (ctx.params.get(key) or {})
        for field_name in fields:
            if field_name in source:
                setattr(ctx.model, field_name, source[field_name])

    return Step(name=_step_name(name, "params.sync"), action=_sync)


def persist(
    saver: Callable[[Any], Any],
    *,
    when: Callable[[RunContext], bool] | None = None,
    name: str | None = None,
) -> Step:
    """Step: hand `ctx.model` to a persistence collaborator.

    A saver returning exactly False is an explicit (message-less) failure; any
    exception it raises is an infrastructure fault and propagates. With `when`, the
    saver is only called if `when(ctx)` is true; otherwise the model stays unsaved and
    the step succeeds.
    """

    if not callable(saver):
        raise TypeError(f"saver must be callable (type={type(saver).__name__})")
    if when is not None and not callable(when):
        raise TypeError(f"when must be callable (type={type(when).__name__})")

    def _persist(ctx: RunContext) -> bool:
        if when is not None and not when(ctx):
            ctx.logger.debug("Skipping persist for %s: condition not met", ctx.operation)
            return True
        return saver(ctx.model) is not False

    return Step(name=_step_name(name, "persist"), action=_persist, meta={"doc": "Persist model"})

