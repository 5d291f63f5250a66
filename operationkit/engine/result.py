from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class ResultStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class FailureReason(str, Enum):
    """Why a run ended on the failure track."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    EXPLICIT = "explicit"


def freeze_errors(errors: Mapping[str, Any]) -> Mapping[str, tuple[str, ...]]:
    frozen: dict[str, tuple[str, ...]] = {}
    for key, messages in errors.items():
        if isinstance(messages, str):
            frozen[str(key)] = (messages,)
        else:
            frozen[str(key)] = tuple(str(message) for message in messages)
    return MappingProxyType(frozen)


@dataclass(frozen=True)
class Result:
    """Immutable outcome of one operation run.

    `errors` maps a field name (or the base key) to its messages. It is empty on
    success. `status` is FAILURE whenever errors are present or a step signaled an
    explicit failure without attaching any message.
    """

    status: ResultStatus
    model: Any = None
    errors: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    reason: FailureReason | None = None
    failed_step: str | None = None
    operation: str | None = None
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    trace: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.status, ResultStatus):
            object.__setattr__(self, "status", ResultStatus(self.status))
        if not isinstance(self.errors, MappingProxyType):
            object.__setattr__(self, "errors", freeze_errors(self.errors))
        if not isinstance(self.extras, MappingProxyType):
            object.__setattr__(self, "extras", MappingProxyType(dict(self.extras)))
        object.__setattr__(self, "trace", tuple(self.trace))

        if self.status is ResultStatus.SUCCESS:
            if self.errors:
                raise ValueError("Successful result cannot carry errors")
            if self.reason is not None:
                raise ValueError("Successful result cannot carry a failure reason")
        elif not self.errors and self.reason is None:
            raise ValueError("Failed result needs errors or a failure reason")
        if self.reason is not None and not isinstance(self.reason, FailureReason):
            object.__setattr__(self, "reason", FailureReason(self.reason))

    @classmethod
    def succeeded(cls, model: Any = None, **kwargs: Any) -> "Result":
        return cls(status=ResultStatus.SUCCESS, model=model, **kwargs)

    @classmethod
    def failed(
        cls,
        errors: Mapping[str, Any] | None = None,
        *,
        reason: FailureReason | None = FailureReason.EXPLICIT,
        model: Any = None,
        **kwargs: Any,
    ) -> "Result":
        return cls(
            status=ResultStatus.FAILURE,
            model=model,
            errors=dict(errors or {}),
            reason=reason,
            **kwargs,
        )

    @property
    def success(self) -> bool:
        return self.status is ResultStatus.SUCCESS

    @property
    def failure(self) -> bool:
        return self.status is ResultStatus.FAILURE

    def error_messages(self, *, base_key: str = "base") -> list[str]:
        """Flatten errors into display strings ("name too short", base unprefixed)."""

        out: list[str] = []
        for key, messages in self.errors.items():
            for message in messages:
                out.append(message if key == base_key else f"{key} {message}")
        return out
