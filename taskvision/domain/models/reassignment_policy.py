"""Reassignment policy and escalation rules.

The policy controls how the reassignment engine handles a rejection:
whether a counterpart task is spawned, how it is titled, and when a
rejection is escalated to administrators.

Escalation fires when either:
- A matching auto-reassign rule exists, and the rejection reason contains
  one of its patterns or the rejection count reached its maximum
- No rule matches, a global threshold is set, and the rejection count
  reached it

Rules may be stored in the reassignment_rules table. Stored rules replace
the built-in rule for the same task type and priority; the built-in rules
cover the rest.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from taskvision.domain.models.task import Task, TaskPriority

DEFAULT_DERIVATIVE_TITLE_SUFFIX = " (Rejected - Requires Attention)"


@dataclass(frozen=True, eq=True)
class ReassignmentRule:
    """Escalation rule keyed by task type and priority.

    Attributes:
        task_type: Task type the rule applies to.
        priority: Task priority the rule applies to.
        auto_reassign: Disabled rules never fire.
        max_rejections: Rejection count at which the rule fires.
        auto_reassign_reasons: Case-insensitive substrings of the reason
            that fire the rule regardless of the count.
    """

    task_type: str
    priority: TaskPriority
    auto_reassign: bool = field(default=True)
    max_rejections: int = field(default=2)
    auto_reassign_reasons: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.max_rejections < 0:
            raise ValueError("max_rejections must not be negative")

    def matches(self, task: Task) -> bool:
        return self.task_type == task.task_type and self.priority == task.priority

    def fires(self, rejection_count: int, reason: str) -> bool:
        """Check if this rule fires for a rejection."""
        if not self.auto_reassign:
            return False
        lowered = reason.lower()
        if any(pattern.lower() in lowered for pattern in self.auto_reassign_reasons):
            return True
        return rejection_count >= self.max_rejections

    @property
    def key(self) -> tuple[str, TaskPriority]:
        return (self.task_type, self.priority)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ReassignmentRule:
        """Create a rule from a reassignment_rules row.

        Older rows use "critical" for the top priority. Missing
        max_rejections falls back to 2.

        Raises:
            ValueError: If the priority is unknown or a value is invalid.
        """
        priority = str(row.get("priority") or "")
        priority = _PRIORITY_ALIASES.get(priority, priority)
        max_rejections = row.get("max_rejections")
        return cls(
            task_type=str(row.get("task_type") or "normal"),
            priority=TaskPriority(priority),
            auto_reassign=bool(row.get("auto_reassign", True)),
            max_rejections=2 if max_rejections is None else int(max_rejections),
            auto_reassign_reasons=tuple(row.get("auto_reassign_reasons") or ()),
        )


_PRIORITY_ALIASES = {"critical": TaskPriority.URGENT.value}

_COMMON_REASONS = ("unable to complete", "out of office", "emergency")

DEFAULT_REASSIGNMENT_RULES: tuple[ReassignmentRule, ...] = (
    ReassignmentRule("normal", TaskPriority.LOW, auto_reassign=False),
    ReassignmentRule(
        "normal",
        TaskPriority.MEDIUM,
        max_rejections=2,
        auto_reassign_reasons=_COMMON_REASONS,
    ),
    ReassignmentRule(
        "normal",
        TaskPriority.HIGH,
        max_rejections=1,
        auto_reassign_reasons=(*_COMMON_REASONS, "capacity"),
    ),
    ReassignmentRule(
        "normal",
        TaskPriority.URGENT,
        max_rejections=0,
        auto_reassign_reasons=(*_COMMON_REASONS, "capacity"),
    ),
    ReassignmentRule(
        "location_based",
        TaskPriority.HIGH,
        max_rejections=1,
        auto_reassign_reasons=("unable to reach location", "location not accessible"),
    ),
    ReassignmentRule(
        "device_control",
        TaskPriority.URGENT,
        max_rejections=0,
        auto_reassign_reasons=("device unavailable", "technical issue"),
    ),
)


def merge_rules(
    stored: Iterable[ReassignmentRule],
    defaults: Iterable[ReassignmentRule] = DEFAULT_REASSIGNMENT_RULES,
) -> tuple[ReassignmentRule, ...]:
    """Overlay stored rules on the defaults, one rule per type and priority."""
    merged: dict[tuple[str, TaskPriority], ReassignmentRule] = {
        rule.key: rule for rule in defaults
    }
    for rule in stored:
        merged[rule.key] = rule
    return tuple(merged.values())


@dataclass(frozen=True)
class ReassignmentPolicy:
    """Policy hook for the reassignment engine.

    Attributes:
        spawn_counterpart: Create a derivative task for the counterpart tier.
        derivative_title_suffix: Appended to the derivative task's title.
        escalation_threshold: Rejection count that escalates tasks no rule
            matches (None disables the fallback).
        rules: Escalation rules.
    """

    spawn_counterpart: bool = True
    derivative_title_suffix: str = DEFAULT_DERIVATIVE_TITLE_SUFFIX
    escalation_threshold: int | None = None
    rules: tuple[ReassignmentRule, ...] = DEFAULT_REASSIGNMENT_RULES

    def __post_init__(self) -> None:
        if self.escalation_threshold is not None and self.escalation_threshold < 1:
            raise ValueError("escalation_threshold must be at least 1")

    def rule_for(self, task: Task) -> ReassignmentRule | None:
        """Return the first rule matching the task's type and priority."""
        return next((rule for rule in self.rules if rule.matches(task)), None)

    def should_escalate(self, task: Task, reason: str) -> bool:
        """Check if a rejection of the task escalates to administrators.

        Args:
            task: The task after its rejection counter was incremented.
            reason: The rejection reason.
        """
        rule = self.rule_for(task)
        if rule is not None:
            return rule.fires(task.rejection_count, reason)
        if self.escalation_threshold is None:
            return False
        return task.rejection_count >= self.escalation_threshold

    def derivative_title(self, title: str) -> str:
        return f"{title}{self.derivative_title_suffix}"


DEFAULT_REASSIGNMENT_POLICY = ReassignmentPolicy()
