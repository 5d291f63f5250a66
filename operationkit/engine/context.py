from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .result import FailureReason

DEFAULT_RUN_LOGGER = "operationkit.run"


@dataclass
class RunContext:
    """Per-invocation state threaded through every step of one run.

    Created fresh by the executor for each `run` call and never shared between
    invocations. `errors` only ever grows during a run.
    """

    params: dict[str, Any]
    actor: Any = None
    operation: str | None = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(DEFAULT_RUN_LOGGER))

    model: Any = None
    errors: dict[str, list[str]] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)
    trace: list[dict[str, Any]] = field(default_factory=list)

    failed: bool = False
    reason: FailureReason | None = None
    failed_step: str | None = None

    @classmethod
    def create(
        cls,
        params: Mapping[str, Any] | None,
        *,
        actor: Any = None,
        operation: str | None = None,
        logger: logging.Logger | None = None,
    ) -> "RunContext":
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            raise TypeError(f"params must be a mapping (type={type(params).__name__})")
        ctx = cls(params=dict(params), actor=actor, operation=operation)
        if logger is not None:
            ctx.logger = logger
        return ctx

    def add_error(self, key: str, message: str) -> None:
        if not isinstance(key, str) or not key.strip():
            raise ValueError("Error key must be a non-empty string")
        self.errors.setdefault(key.strip(), []).append(str(message))

    def merge_errors(self, errors: Mapping[str, Any]) -> None:
        for key, messages in errors.items():
            if isinstance(messages, str):
                self.add_error(key, messages)
                continue
            for message in messages:
                self.add_error(key, message)

    def has_errors(self) -> bool:
        return any(self.errors.values())

    def executed_steps(self) -> tuple[str, ...]:
        return tuple(str(record.get("name")) for record in self.trace)
