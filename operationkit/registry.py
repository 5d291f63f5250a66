from __future__ import annotations

import difflib
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from operationkit.engine.executor import PipelineExecutor
from operationkit.engine.result import Result
from operationkit.engine.steps import OperationDefinition


class UnknownOperationError(KeyError):
    """Raised when `run`/`resolve` gets a name no registered operation matches."""

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name
        self.message = message

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class OperationRegistry:
    """Explicit catalog of operation definitions plus the `run` entry point.

    Built once and read-only afterwards; safe to share across threads.
    """

    _by_name: dict[str, OperationDefinition]
    executor: PipelineExecutor = field(default_factory=PipelineExecutor)

    @classmethod
    def from_definitions(
        cls,
        definitions: Iterable[OperationDefinition],
        *,
        executor: PipelineExecutor | None = None,
    ) -> "OperationRegistry":
        entries: dict[str, OperationDefinition] = {}
        for definition in definitions:
            if not isinstance(definition, OperationDefinition):
                raise TypeError(
                    f"Registry entries must be OperationDefinition (type={type(definition).__name__})"
                )
            if definition.name in entries:
                raise ValueError(f"Duplicate operation name: {definition.name}")
            entries[definition.name] = definition
        return cls(_by_name=entries, executor=executor or PipelineExecutor())

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_name.keys()))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip() in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def describe(self) -> tuple[dict[str, Any], ...]:
        return tuple(self._by_name[name].describe() for name in self.available())

    def get(self, name: str) -> OperationDefinition:
        definition = self._by_name.get((name or "").strip())
        if definition is None:
            raise UnknownOperationError(name, f"Unknown operation: {name}")
        return definition

    def resolve(self, name: str) -> OperationDefinition:
        """Exact match, or a unique dotted-suffix match ("create" -> "company.create")."""

        if not isinstance(name, str) or not name.strip():
            raise ValueError("operation name must be a non-empty string")
        key = name.strip()

        direct = self._by_name.get(key)
        if direct is not None:
            return direct

        if "." not in key:
            matches = sorted(n for n in self._by_name if n.endswith("." + key))
            if len(matches) == 1:
                return self._by_name[matches[0]]
            if len(matches) > 1:
                raise UnknownOperationError(
                    name, f"Ambiguous operation name: {name} (matches: {', '.join(matches)})"
                )

        available = ", ".join(self.available()) or "<none>"
        suggestions = self.suggest(key)
        hint = f"; did you mean: {', '.join(suggestions)}" if suggestions else ""
        raise UnknownOperationError(name, f"Unknown operation: {name} (available: {available}{hint})")

    def suggest(self, name: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (name or "").strip()
        if not key:
            return ()

        available = self.available()
        if not available:
            return ()

        suffix_to_full: dict[str, list[str]] = defaultdict(list)
        for full in available:
            suffix_to_full[full.split(".", 1)[-1]].append(full)

        suggestions = list(difflib.get_close_matches(key, list(suffix_to_full.keys()), n=limit))
        expanded: list[str] = []
        for suggestion in suggestions:
            expanded.extend(suffix_to_full.get(suggestion, []))
        if expanded:
            return tuple(expanded[:limit])
        return tuple(difflib.get_close_matches(key, list(available), n=limit))

    def run(self, operation_name: str, params: Mapping[str, Any] | None = None, actor: Any = None) -> Result:
        """Invoke one operation with a fresh run context and return its Result.

        Validation and authorization failures come back as a failed Result; any
        exception raised by a step propagates to the caller unchanged.
        """

        definition = self.resolve(operation_name)
        return self.executor.run(definition, params, actor)
