from __future__ import annotations

import argparse
import importlib
import sys
from collections.abc import Sequence
from typing import Any, TextIO

from operationkit.registry import OperationRegistry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="operationkit", add_help=True)
    sub = parser.add_subparsers(dest="command", required=True)

    list_ops = sub.add_parser("list-operations", help="List operations in a registry")
    list_ops.add_argument("target", help="module:attribute of an OperationRegistry or factory")

    describe = sub.add_parser("describe", help="Show the steps of one operation")
    describe.add_argument("target", help="module:attribute of an OperationRegistry or factory")
    describe.add_argument("name", help="Operation name (exact or unique suffix)")

    check = sub.add_parser("check-config", help="Load and validate the YAML config")
    check.add_argument("--config", dest="config_path", default=None, help="Explicit config file")

    return parser


def load_registry(target: str) -> OperationRegistry:
    """Import `module:attribute`; the attribute is a registry or a zero-arg factory."""

    module_name, sep, attr = (target or "").partition(":")
    if not sep or not module_name.strip() or not attr.strip():
        raise ValueError(f"Target must look like 'package.module:attribute' (got {target!r})")

    module = importlib.import_module(module_name.strip())
    obj: Any = module
    for part in attr.strip().split("."):
        obj = getattr(obj, part)

    if callable(obj) and not isinstance(obj, OperationRegistry):
        obj = obj()
    if not isinstance(obj, OperationRegistry):
        raise TypeError(f"{target} did not produce an OperationRegistry (type={type(obj).__name__})")
    return obj


def _list_operations(registry: OperationRegistry, out: TextIO) -> None:
    for row in registry.describe():
        doc = f"  {row['doc']}" if row.get("doc") else ""
        out.write(f"{row['operation']}{doc}\n")


def _describe(registry: OperationRegistry, name: str, out: TextIO) -> None:
    definition = registry.resolve(name)
    out.write(f"{definition.name}\n")
    for idx, item in enumerate(definition.steps, start=1):
        flags = [flag for flag, on in (("fail_fast", item.fail_fast), ("on_fatal", item.on_fatal)) if on]
        suffix = f" [{', '.join(flags)}]" if flags else ""
        out.write(f"  {idx:02d}. {item.name} ({item.track.value}){suffix}\n")


def _check_config(config_path: str | None, out: TextIO) -> None:
    from operationkit.config import Settings
    from operationkit.config_io import load_config

    cfg, meta = load_config(config_path=config_path)
    settings = Settings.from_dict(cfg)
    settings.apply_logging()
    out.write(f"Config OK ({meta['mode']}): {', '.join(meta['paths'])}\n")
    out.write(f"  contracts: {', '.join(settings.contracts.available()) or '<none>'}\n")
    out.write(f"  log_level: {settings.executor.log_level}\n")


def main(argv: Sequence[str] | None = None, *, out: TextIO | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    stream = out or sys.stdout

    try:
        if args.command == "list-operations":
            _list_operations(load_registry(args.target), stream)
            return 0
        if args.command == "describe":
            _describe(load_registry(args.target), args.name, stream)
            return 0
        if args.command == "check-config":
            _check_config(args.config_path, stream)
            return 0
    except (FileNotFoundError, ImportError, KeyError, TypeError, ValueError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
