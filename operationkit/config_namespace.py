"""Strict configuration namespace helper with consumed-keys enforcement."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

_MISSING = object()


def _join_path(parent: str, key: str) -> str:
    if not parent:
        return key
    return f"{parent}.{key}"


def _check_bounds(
    path: str,
    value: float,
    *,
    min_value: float | None,
    max_value: float | None,
) -> None:
    if min_value is not None and value < min_value:
        raise ValueError(f"{path} must be >= {min_value} (got {value})")
    if max_value is not None and value > max_value:
        raise ValueError(f"{path} must be <= {max_value} (got {value})")


@dataclass
class ConfigNamespace:
    """Parses one mapping section; every key read is marked consumed.

    `assert_consumed()` then rejects whatever the caller never asked for, so typos in
    YAML files fail loudly instead of silently falling back to defaults.
    """

    data: Mapping[str, Any]
    path: str
    _consumed: set[str] = field(default_factory=set, init=False, repr=False)
    _children: dict[str, "ConfigNamespace"] = field(default_factory=dict, init=False, repr=False)
    _effective: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def empty(cls, *, path: str) -> "ConfigNamespace":
        return cls({}, path=path)

    def _key_path(self, key: str) -> str:
        return _join_path(self.path, key.strip())

    def consumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._consumed))

    def unconsumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(str(k) for k in self.data.keys() if k not in self._consumed))

    def assert_consumed(self) -> None:
        unknown = list(self.unconsumed_keys())
        if unknown:
            path = self.path or "<root>"
            consumed = ", ".join(self.consumed_keys()) or "<none>"
            raise ValueError(
                f"Unknown config keys under {path}: {', '.join(unknown)} (consumed: {consumed})"
            )
        for child in self._children.values():
            child.assert_consumed()

    def effective_values(self) -> dict[str, Any]:
        out = dict(self._effective)
        for key, child in self._children.items():
            child_effective = child.effective_values()
            if child_effective:
                out[key] = child_effective
        return out

    def _record_effective(self, key: str, value: Any) -> None:
        self._effective[key.strip()] = value

    def _get_raw(self, key: str, *, default: Any) -> Any:
        if not isinstance(key, str) or not key.strip():
            raise TypeError("ConfigNamespace key must be a non-empty string")
        normalized = key.strip()
        if normalized in self._children:
            raise ValueError(f"{self._key_path(normalized)} already accessed as a nested namespace")

        self._consumed.add(normalized)
        if normalized not in self.data:
            if default is _MISSING:
                raise ValueError(f"Missing required config key: {self._key_path(normalized)}")
            return default
        return self.data.get(normalized)

    def has(self, key: str) -> bool:
        return key.strip() in self.data

    def namespace(
        self,
        key: str,
        *,
        default: Mapping[str, Any] | None | object = _MISSING,
    ) -> "ConfigNamespace":
        normalized = (key or "").strip()
        if not normalized:
            raise TypeError("ConfigNamespace key must be a non-empty string")
        if normalized in self._children:
            return self._children[normalized]

        raw = self.data.get(normalized) if normalized in self.data else None
        self._consumed.add(normalized)
        if raw is None:
            if default is _MISSING:
                raise ValueError(f"Missing required config namespace: {self._key_path(normalized)}")
            if default is not None and not isinstance(default, Mapping):
                raise TypeError(f"default for {self._key_path(normalized)} must be a mapping or None")
            raw = dict(default) if default is not None else {}
        elif not isinstance(raw, Mapping):
            raise TypeError(
                f"{self._key_path(normalized)} must be a mapping (type={type(raw).__name__})"
            )

        child = ConfigNamespace(dict(raw), path=self._key_path(normalized))
        self._children[normalized] = child
        return child

    def child_keys(self) -> tuple[str, ...]:
        return tuple(str(k) for k in self.data.keys())

    def get_bool(self, key: str, *, default: bool | object = _MISSING) -> bool:
        if default is not _MISSING and not isinstance(default, bool):
            raise TypeError(f"{self._key_path(key)} default must be a boolean")

        value = self._get_raw(key, default=default)
        if not isinstance(value, bool):
            raise TypeError(f"{self._key_path(key)} must be a boolean (type={type(value).__name__})")
        self._record_effective(key, value)
        return value

    def get_optional_int(
        self,
        key: str,
        *,
        default: int | None | object = None,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> int | None:
        raw = self._get_raw(key, default=default)
        if raw is None:
            self._record_effective(key, None)
            return None
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise TypeError(
                f"{self._key_path(key)} must be an int or null (type={type(raw).__name__})"
            )
        _check_bounds(self._key_path(key), raw, min_value=min_value, max_value=max_value)
        self._record_effective(key, raw)
        return raw

    def get_optional_float(
        self,
        key: str,
        *,
        default: float | None | object = None,
        min_value: float | None = None,
        max_value: float | None = None,
    ) -> float | None:
        raw = self._get_raw(key, default=default)
        if raw is None:
            self._record_effective(key, None)
            return None
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise TypeError(
                f"{self._key_path(key)} must be a number or null (type={type(raw).__name__})"
            )
        value = float(raw)
        _check_bounds(self._key_path(key), value, min_value=min_value, max_value=max_value)
        self._record_effective(key, value)
        return value

    def get_str(
        self,
        key: str,
        *,
        default: str | None | object = _MISSING,
        allow_empty: bool = False,
        choices: Iterable[str] | None = None,
    ) -> str | None:
        if default is not _MISSING and default is not None and not isinstance(default, str):
            raise TypeError(f"{self._key_path(key)} default must be a string or None")

        raw = self._get_raw(key, default=default)
        if raw is None:
            self._record_effective(key, None)
            return None
        if not isinstance(raw, str):
            raise TypeError(f"{self._key_path(key)} must be a string (type={type(raw).__name__})")

        value = raw.strip()
        if not value and not allow_empty:
            raise ValueError(f"{self._key_path(key)} cannot be empty")
        if choices is not None:
            choice_set = {str(item).strip() for item in choices if str(item).strip()}
            if value not in choice_set:
                allowed = ", ".join(sorted(choice_set)) or "<none>"
                raise ValueError(f"{self._key_path(key)} must be one of: {allowed} (got {value!r})")
        self._record_effective(key, value)
        return value

    def get_list(self, key: str, *, default: list[Any] | object = _MISSING) -> list[Any]:
        """Parse a list of scalars (str/int/float/bool), e.g. inclusion choices."""

        raw = self._get_raw(key, default=default)
        if not isinstance(raw, (list, tuple)):
            raise TypeError(f"{self._key_path(key)} must be a list (type={type(raw).__name__})")
        items: list[Any] = []
        for idx, item in enumerate(raw):
            if isinstance(item, (Mapping, list, tuple)):
                raise TypeError(
                    f"{self._key_path(key)}[{idx}] must be a scalar (type={type(item).__name__})"
                )
            items.append(item)
        self._record_effective(key, list(items))
        return items

    def get_list_str(
        self,
        key: str,
        *,
        default: list[str] | tuple[str, ...] | object = _MISSING,
        allow_empty: bool = False,
    ) -> list[str]:
        raw = self._get_raw(key, default=default)
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, (list, tuple)):
            raise TypeError(f"{self._key_path(key)} must be a list[str] (type={type(raw).__name__})")

        items: list[str] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, str):
                raise TypeError(
                    f"{self._key_path(key)}[{idx}] must be a string (type={type(item).__name__})"
                )
            trimmed = item.strip()
            if not trimmed:
                raise ValueError(f"{self._key_path(key)}[{idx}] cannot be empty")
            items.append(trimmed)

        if not items and not allow_empty:
            raise ValueError(f"{self._key_path(key)} cannot be empty")
        self._record_effective(key, list(items))
        return items

    def get_list_mapping(
        self,
        key: str,
        *,
        default: list[Mapping[str, Any]] | object = _MISSING,
        allow_empty: bool = False,
    ) -> list[dict[str, Any]]:
        raw = self._get_raw(key, default=default)
        if not isinstance(raw, (list, tuple)):
            raise TypeError(f"{self._key_path(key)} must be a list[dict] (type={type(raw).__name__})")

        items: list[dict[str, Any]] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, Mapping):
                raise TypeError(
                    f"{self._key_path(key)}[{idx}] must be a mapping (type={type(item).__name__})"
                )
            items.append(dict(item))

        if not items and not allow_empty:
            raise ValueError(f"{self._key_path(key)} cannot be empty")
        self._record_effective(key, list(items))
        return items
