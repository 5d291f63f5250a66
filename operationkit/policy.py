"""Policy evaluation: pure authorization predicates over (actor, subject, action)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)

Rule = Callable[[Any, Any], bool]


class PolicyDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is PolicyDecision.ALLOW


def _normalize_action(action: str) -> str:
    if not isinstance(action, str) or not action.strip():
        raise ValueError("Policy action must be a non-empty string")
    # "create?" and "create" name the same action.
    return action.strip().rstrip("?")


@dataclass(frozen=True)
class Policy:
    """Named set of per-action predicates.

    Each rule is called as `rule(actor, subject)` and must return a bool. Actions
    without a rule are denied.
    """

    name: str
    rules: Mapping[str, Rule] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Policy name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())

        normalized: dict[str, Rule] = {}
        for action, rule in dict(self.rules).items():
            key = _normalize_action(action)
            if key in normalized:
                raise ValueError(f"Duplicate rule for action {key!r} in policy {self.name}")
            if not callable(rule):
                raise TypeError(
                    f"Policy {self.name} rule for {key!r} must be callable (type={type(rule).__name__})"
                )
            normalized[key] = rule
        object.__setattr__(self, "rules", normalized)

    def actions(self) -> tuple[str, ...]:
        return tuple(sorted(self.rules))

    def rule_for(self, action: str) -> Rule | None:
        return self.rules.get(_normalize_action(action))


def authorize(policy: Policy, actor: Any, subject: Any, action: str) -> PolicyDecision:
    """Evaluate `policy` once for `action`; no caching, no retries."""

    if not isinstance(policy, Policy):
        raise TypeError(f"authorize expects a Policy (type={type(policy).__name__})")

    rule = policy.rule_for(action)
    if rule is None:
        logger.debug("Policy %s has no rule for %s; denying", policy.name, action)
        return PolicyDecision.DENY

    verdict = rule(actor, subject)
    if isinstance(verdict, PolicyDecision):
        return verdict
    if not isinstance(verdict, bool):
        raise TypeError(
            f"Policy {policy.name} rule for {_normalize_action(action)!r} returned "
            f"{type(verdict).__name__}; expected bool"
        )
    return PolicyDecision.ALLOW if verdict else PolicyDecision.DENY
