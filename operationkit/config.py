from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from operationkit.config_namespace import ConfigNamespace
from operationkit.contract import ContractRegistry, contracts_from_mapping

RecorderMode = Literal["default", "null"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

ALLOWED_RECORDERS: tuple[str, ...] = ("default", "null")
ALLOWED_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


@dataclass(frozen=True)
class ExecutorConfig:
    base_error_key: str = "base"
    denied_message: str = "not authorized"
    not_found_message: str = "not found"
    recorder: RecorderMode = "default"
    log_level: LogLevel = "INFO"

    def __post_init__(self) -> None:
        for name in ("base_error_key", "denied_message", "not_found_message"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"executor.{name} must be a non-empty string")
        if self.recorder not in ALLOWED_RECORDERS:
            raise ValueError(f"Invalid executor.recorder: {self.recorder!r}")
        if self.log_level not in ALLOWED_LOG_LEVELS:
            raise ValueError(f"Invalid executor.log_level: {self.log_level!r}")

    @classmethod
    def from_namespace(cls, ns: ConfigNamespace) -> "ExecutorConfig":
        defaults = cls()
        return cls(
            base_error_key=ns.get_str("base_error_key", default=defaults.base_error_key),
            denied_message=ns.get_str("denied_message", default=defaults.denied_message),
            not_found_message=ns.get_str("not_found_message", default=defaults.not_found_message),
            recorder=ns.get_str("recorder", default=defaults.recorder, choices=ALLOWED_RECORDERS),  # type: ignore[arg-type]
            log_level=ns.get_str(  # type: ignore[arg-type]
                "log_level", default=defaults.log_level, choices=ALLOWED_LOG_LEVELS
            ),
        )


@dataclass(frozen=True)
class Settings:
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    contracts: ContractRegistry = field(default_factory=ContractRegistry.empty)
    effective: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> "Settings":
        """Parse the full config mapping; unknown keys anywhere raise ValueError."""

        if not isinstance(cfg, Mapping):
            raise TypeError(f"config must be a mapping (type={type(cfg).__name__})")
        root = ConfigNamespace(dict(cfg), path="")
        executor = ExecutorConfig.from_namespace(root.namespace("executor", default=None))
        contracts = contracts_from_mapping(root.namespace("contracts", default=None))
        root.assert_consumed()
        return cls(executor=executor, contracts=contracts, effective=root.effective_values())

    def apply_logging(self, *, logger_name: str = "operationkit") -> logging.Logger:
        return configure_logging(self.executor.log_level, logger_name=logger_name)


def load_settings(*, configure: bool = True, **load_kwargs: Any) -> Settings:
    """Load and parse the YAML config; with `configure`, apply `executor.log_level`."""

    from operationkit.config_io import load_config

    cfg, _meta = load_config(**load_kwargs)
    settings = Settings.from_dict(cfg)
    if configure:
        settings.apply_logging()
    return settings


def configure_logging(level: str = "INFO", *, logger_name: str = "operationkit") -> logging.Logger:
    """Attach a single stream handler to the package logger (idempotent)."""

    normalized = str(level or "").strip().upper()
    if normalized not in ALLOWED_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level!r}")

    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, normalized))
    for handler in logger.handlers:
        if getattr(handler, "_operationkit_handler", False):
            handler.setLevel(getattr(logging, normalized))
            return logger

    handler = logging.StreamHandler()
    handler.setLevel(getattr(logging, normalized))
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._operationkit_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
