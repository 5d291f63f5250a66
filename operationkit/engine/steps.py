from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from .context import RunContext
from .result import FailureReason


class OperationDefinitionError(ValueError):
    """Raised when an operation definition is malformed."""


class Track(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    BOTH = "both"

    def runs_on_success(self) -> bool:
        return self in (Track.SUCCESS, Track.BOTH)

    def runs_on_failure(self) -> bool:
        return self in (Track.FAILURE, Track.BOTH)


@dataclass(frozen=True)
class StepFailure:
    """Failure marker a step action returns to switch the run to the failure track."""

    errors: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    reason: FailureReason = FailureReason.EXPLICIT

    def __post_init__(self) -> None:
        if not isinstance(self.errors, Mapping):
            raise TypeError(
                f"StepFailure errors must be a mapping (type={type(self.errors).__name__})"
            )
        normalized: dict[str, tuple[str, ...]] = {}
        for key, messages in self.errors.items():
            if isinstance(messages, str):
                normalized[str(key)] = (messages,)
            else:
                normalized[str(key)] = tuple(str(message) for message in messages)
        object.__setattr__(self, "errors", normalized)
        if not isinstance(self.reason, FailureReason):
            object.__setattr__(self, "reason", FailureReason(self.reason))


StepAction = Callable[[RunContext], Any]


@dataclass(frozen=True)
class Step:
    name: str
    action: StepAction
    track: Track = Track.SUCCESS
    fail_fast: bool = False
    on_fatal: bool = False
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise TypeError(f"Step name must be a string (type={type(self.name).__name__})")
        name = self.name.strip()
        if not name:
            raise ValueError("Step name cannot be empty")
        object.__setattr__(self, "name", name)

        if not callable(self.action):
            raise TypeError(f"Step {name} action must be callable (type={type(self.action).__name__})")

        try:
            track = Track(self.track)
        except ValueError as exc:
            raise ValueError(f"Step {name} has invalid track: {self.track!r}") from exc
        object.__setattr__(self, "track", track)

        if self.on_fatal and not track.runs_on_failure():
            raise ValueError(f"Step {name} sets on_fatal but does not run on the failure track")
        if not isinstance(self.meta, dict):
            raise TypeError(f"Step meta must be a dict (type={type(self.meta).__name__})")


def step(name: str, action: StepAction, **kwargs: Any) -> Step:
    return Step(name=name, action=action, track=Track.SUCCESS, **kwargs)


def fail(name: str, action: StepAction, **kwargs: Any) -> Step:
    return Step(name=name, action=action, track=Track.FAILURE, **kwargs)


def both(name: str, action: StepAction, **kwargs: Any) -> Step:
    return Step(name=name, action=action, track=Track.BOTH, **kwargs)


@dataclass(frozen=True)
class OperationDefinition:
    """An ordered, immutable list of steps implementing one use case."""

    name: str
    steps: tuple[Step, ...]
    doc: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise OperationDefinitionError("Operation name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())

        steps = tuple(self.steps)
        seen: set[str] = set()
        duplicates: set[str] = set()
        for idx, item in enumerate(steps):
            if not isinstance(item, Step):
                raise OperationDefinitionError(
                    f"Operation {self.name} step[{idx}] must be a Step (type={type(item).__name__})"
                )
            if item.name in seen:
                duplicates.add(item.name)
            seen.add(item.name)
        if duplicates:
            raise OperationDefinitionError(
                f"Duplicate step name(s) in operation {self.name}: {', '.join(sorted(duplicates))}"
            )
        object.__setattr__(self, "steps", steps)

        if self.doc is not None and (not isinstance(self.doc, str) or not self.doc.strip()):
            raise OperationDefinitionError("Operation doc must be a non-empty string or None")

    @classmethod
    def build(cls, name: str, steps: Iterable[Step], *, doc: str | None = None) -> "OperationDefinition":
        return cls(name=name, steps=tuple(steps), doc=doc)

    def step_names(self, track: Track | None = None) -> tuple[str, ...]:
        if track is None:
            return tuple(item.name for item in self.steps)
        if track is Track.SUCCESS:
            return tuple(item.name for item in self.steps if item.track.runs_on_success())
        if track is Track.FAILURE:
            return tuple(item.name for item in self.steps if item.track.runs_on_failure())
        return tuple(item.name for item in self.steps if item.track is Track.BOTH)

    def get_step(self, name: str) -> Step:
        for item in self.steps:
            if item.name == name:
                return item
        raise KeyError(f"Unknown step {name!r} in operation {self.name}")

    def describe(self) -> dict[str, Any]:
        return {
            "operation": self.name,
            "doc": self.doc,
            "steps": [
                {
                    "name": item.name,
                    "track": item.track.value,
                    "fail_fast": item.fail_fast,
                    "on_fatal": item.on_fatal,
                    "doc": item.meta.get("doc"),
                }
                for item in self.steps
            ],
        }
