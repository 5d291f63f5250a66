"""Contract validation: named schemas of scoped field rules.

A schema holds an ordered set of `FieldRule`s. `validate(payload, scope)` runs every
rule whose scopes include `scope` (rules without scopes run in every scope) and
returns a mapping of field name to messages; an empty mapping means the payload
passed.

Rules on the same field never short-circuit each other: a missing `name` checked by
both `presence()` and `length(minimum=6)` reports both problems at once.

Example:
    schema = ContractSchema.build(
        "company",
        [
            FieldRule("name", presence(), scopes=("update",)),
            FieldRule("name", length(minimum=6, maximum=20), scopes=("update",)),
        ],
    )
    schema.validate({"name": "ab"}, scope="update")
    # {"name": ["too short"]}
"""

from __future__ import annotations

import difflib
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol

from operationkit.config_namespace import ConfigNamespace


class Predicate(Protocol):
    """Checks one field value (None when absent) and returns failure messages."""

    def __call__(self, value: Any) -> Iterable[str]:
        ...


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class Presence:
    message: str = "can't be blank"

    def __call__(self, value: Any) -> list[str]:
        return [self.message] if _is_blank(value) else []


@dataclass(frozen=True)
class Length:
    minimum: int | None = None
    maximum: int | None = None
    too_short: str = "too short"
    too_long: str = "too long"

    def __post_init__(self) -> None:
        if self.minimum is None and self.maximum is None:
            raise ValueError("length() needs a minimum, a maximum, or both")
        for name in ("minimum", "maximum"):
            bound = getattr(self, name)
            if bound is not None and (isinstance(bound, bool) or not isinstance(bound, int) or bound < 0):
                raise ValueError(f"length() {name} must be a non-negative int (got {bound!r})")
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError(
                f"length() minimum must be <= maximum (got {self.minimum} > {self.maximum})"
            )

    def __call__(self, value: Any) -> list[str]:
        size = 0 if value is None else len(value if hasattr(value, "__len__") else str(value))
        if self.minimum is not None and size < self.minimum:
            return [self.too_short]
        if self.maximum is not None and size > self.maximum:
            return [self.too_long]
        return []


@dataclass(frozen=True)
class Matches:
    pattern: str
    message: str = "is invalid"
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            compiled = re.compile(self.pattern)
        except re.error as exc:
            raise ValueError(f"matches() pattern is not a valid regex: {self.pattern!r} ({exc})") from exc
        object.__setattr__(self, "_compiled", compiled)

    def __call__(self, value: Any) -> list[str]:
        if value is None or not isinstance(value, str):
            return [self.message]
        return [] if self._compiled.fullmatch(value) else [self.message]


@dataclass(frozen=True)
class Inclusion:
    choices: tuple[Any, ...]
    message: str = "is not included in the list"

    def __post_init__(self) -> None:
        object.__setattr__(self, "choices", tuple(self.choices))
        if not self.choices:
            raise ValueError("inclusion() needs at least one choice")

    def __call__(self, value: Any) -> list[str]:
        return [] if value in self.choices else [self.message]


def _format_bound(bound: float) -> str:
    if float(bound).is_integer():
        return str(int(bound))
    return str(bound)


@dataclass(frozen=True)
class Numericality:
    greater_than: float | None = None
    less_than: float | None = None
    message: str = "is not a number"

    def _as_number(self, value: Any) -> float | None:
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str) and value.strip():
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None

    def __call__(self, value: Any) -> list[str]:
        number = self._as_number(value)
        if number is None:
            return [self.message]
        messages: list[str] = []
        if self.greater_than is not None and not number > self.greater_than:
            messages.append(f"must be greater than {_format_bound(self.greater_than)}")
        if self.less_than is not None and not number < self.less_than:
            messages.append(f"must be less than {_format_bound(self.less_than)}")
        return messages


@dataclass(frozen=True)
class Satisfies:
    check: Callable[[Any], bool]
    message: str = "is invalid"

    def __post_init__(self) -> None:
        if not callable(self.check):
            raise TypeError(f"satisfies() check must be callable (type={type(self.check).__name__})")

    def __call__(self, value: Any) -> list[str]:
        return [] if self.check(value) else [self.message]


def presence(*, message: str | None = None) -> Presence:
    return Presence() if message is None else Presence(message=message)


def length(
    *,
    minimum: int | None = None,
    maximum: int | None = None,
    too_short: str | None = None,
    too_long: str | None = None,
) -> Length:
    kwargs: dict[str, Any] = {"minimum": minimum, "maximum": maximum}
    if too_short is not None:
        kwargs["too_short"] = too_short
    if too_long is not None:
        kwargs["too_long"] = too_long
    return Length(**kwargs)


def matches(pattern: str, *, message: str | None = None) -> Matches:
    return Matches(pattern) if message is None else Matches(pattern, message=message)


def inclusion(choices: Iterable[Any], *, message: str | None = None) -> Inclusion:
    return Inclusion(tuple(choices)) if message is None else Inclusion(tuple(choices), message=message)


def numericality(
    *,
    greater_than: float | None = None,
    less_than: float | None = None,
    message: str | None = None,
) -> Numericality:
    if message is None:
        return Numericality(greater_than=greater_than, less_than=less_than)
    return Numericality(greater_than=greater_than, less_than=less_than, message=message)


def satisfies(check: Callable[[Any], bool], message: str = "is invalid") -> Satisfies:
    return Satisfies(check=check, message=message)


@dataclass(frozen=True)
class FieldRule:
    field: str
    predicate: Predicate
    scopes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field.strip():
            raise ValueError("FieldRule.field must be a non-empty string")
        object.__setattr__(self, "field", self.field.strip())
        if not callable(self.predicate):
            raise TypeError(
                f"FieldRule {self.field} predicate must be callable (type={type(self.predicate).__name__})"
            )
        if isinstance(self.scopes, str):
            object.__setattr__(self, "scopes", (self.scopes,))
        scopes = tuple(str(scope).strip() for scope in self.scopes if str(scope).strip())
        object.__setattr__(self, "scopes", scopes)

    def applies_to(self, scope: str | None) -> bool:
        if not self.scopes:
            return True
        return scope is not None and scope in self.scopes

    def check(self, payload: Mapping[str, Any]) -> list[str]:
        messages = self.predicate(payload.get(self.field))
        if messages is None:
            raise TypeError(f"Predicate for {self.field} returned None; expected a list of messages")
        return [str(message) for message in messages]


@dataclass(frozen=True)
class ContractSchema:
    name: str
    rules: tuple[FieldRule, ...] = ()
    doc: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("ContractSchema.name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())
        rules = tuple(self.rules)
        for idx, rule in enumerate(rules):
            if not isinstance(rule, FieldRule):
                raise TypeError(
                    f"Contract {self.name} rules[{idx}] must be a FieldRule (type={type(rule).__name__})"
                )
        object.__setattr__(self, "rules", rules)

    @classmethod
    def build(cls, name: str, rules: Iterable[FieldRule], *, doc: str | None = None) -> "ContractSchema":
        return cls(name=name, rules=tuple(rules), doc=doc)

    def scopes(self) -> tuple[str, ...]:
        return tuple(sorted({scope for rule in self.rules for scope in rule.scopes}))

    def validate(self, payload: Mapping[str, Any], scope: str | None = None) -> dict[str, list[str]]:
        if not isinstance(payload, Mapping):
            raise TypeError(f"Contract payload must be a mapping (type={type(payload).__name__})")
        errors: dict[str, list[str]] = {}
        for rule in self.rules:
            if not rule.applies_to(scope):
                continue
            messages = rule.check(payload)
            if messages:
                errors.setdefault(rule.field, []).extend(messages)
        return errors


@dataclass(frozen=True)
class ContractRegistry:
    _by_name: dict[str, ContractSchema]

    @classmethod
    def empty(cls) -> "ContractRegistry":
        return cls(_by_name={})

    @classmethod
    def from_schemas(cls, schemas: Iterable[ContractSchema]) -> "ContractRegistry":
        entries: dict[str, ContractSchema] = {}
        for schema in schemas:
            if schema.name in entries:
                raise ValueError(f"Duplicate contract schema name: {schema.name}")
            entries[schema.name] = schema
        return cls(_by_name=entries)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_name.keys()))

    def get(self, name: str) -> ContractSchema:
        schema = self._by_name.get((name or "").strip())
        if schema is None:
            available = ", ".join(self.available()) or "<none>"
            close = difflib.get_close_matches((name or "").strip(), list(self._by_name), n=3)
            hint = f"; did you mean: {', '.join(close)}" if close else ""
            raise KeyError(f"Unknown contract schema: {name} (available: {available}{hint})")
        return schema

    def validate(
        self, schema_name: str, payload: Mapping[str, Any], scope: str | None = None
    ) -> dict[str, list[str]]:
        return self.get(schema_name).validate(payload, scope)

    def merged(self, other: "ContractRegistry") -> "ContractRegistry":
        return ContractRegistry.from_schemas([*self._by_name.values(), *other._by_name.values()])


CHECKS: tuple[str, ...] = ("presence", "length", "format", "inclusion", "numericality")


def _rule_from_namespace(ns: ConfigNamespace) -> FieldRule:
    field_name = ns.get_str("field")
    check = ns.get_str("check", choices=CHECKS)
    scopes = ns.get_list_str("scopes", default=[], allow_empty=True)
    message = ns.get_str("message", default=None)

    predicate: Predicate
    if check == "presence":
        predicate = presence(message=message)
    elif check == "length":
        minimum = ns.get_optional_int("min", min_value=0)
        maximum = ns.get_optional_int("max", min_value=0)
        if minimum is None and maximum is None:
            raise ValueError(f"{ns.path} length check needs min and/or max")
        predicate = length(
            minimum=minimum,
            maximum=maximum,
            too_short=ns.get_str("too_short", default=message),
            too_long=ns.get_str("too_long", default=message),
        )
    elif check == "format":
        predicate = matches(ns.get_str("pattern"), message=message)
    elif check == "inclusion":
        predicate = inclusion(ns.get_list("in"), message=message)
    else:
        predicate = numericality(
            greater_than=ns.get_optional_float("greater_than"),
            less_than=ns.get_optional_float("less_than"),
            message=message,
        )

    ns.assert_consumed()
    return FieldRule(field_name, predicate, scopes=tuple(scopes))


def contracts_from_mapping(data: Mapping[str, Any] | ConfigNamespace | None) -> ContractRegistry:
    """Build a ContractRegistry from a plain mapping (usually the `contracts` YAML section).

    Shape:
        company:
          doc: Company attributes
          rules:
            - {field: name, check: presence, scopes: [update]}
            - {field: name, check: length, min: 6, max: 20, scopes: [update]}
    """

    if data is None:
        return ContractRegistry.empty()
    ns = data if isinstance(data, ConfigNamespace) else ConfigNamespace(dict(data), path="contracts")

    schemas: list[ContractSchema] = []
    for name in ns.child_keys():
        schema_ns = ns.namespace(name)
        doc = schema_ns.get_str("doc", default=None)
        raw_rules = schema_ns.get_list_mapping("rules", default=[], allow_empty=True)
        rules = [
            _rule_from_namespace(ConfigNamespace(raw, path=f"{schema_ns.path}.rules[{idx}]"))
            for idx, raw in enumerate(raw_rules)
        ]
        schemas.append(ContractSchema.build(name, rules, doc=doc))
    ns.assert_consumed()
    return ContractRegistry.from_schemas(schemas)
