"""Reassignment rule source stub (in memory)."""

from __future__ import annotations

from collections.abc import Iterable

from taskvision.application.ports.reassignment_rule_source import (
    REASSIGNMENT_RULES_TABLE,
    ReassignmentRuleSourceProtocol,
)
from taskvision.domain.errors.storage import TaskStoreError
from taskvision.domain.models.reassignment_policy import ReassignmentRule


class ReassignmentRuleSourceStub(ReassignmentRuleSourceProtocol):
    """In-memory stub implementation of ReassignmentRuleSourceProtocol.

    Attributes:
        rules: Rules returned by list_rules.
    """

    def __init__(self, rules: Iterable[ReassignmentRule] = ()) -> None:
        self.rules: list[ReassignmentRule] = list(rules)
        self._list_failures: list[Exception] = []

    def fail_next_list(self, error: Exception | None = None) -> None:
        self._list_failures.append(
            error or TaskStoreError("list_rules", REASSIGNMENT_RULES_TABLE, "injected failure")
        )

    async def list_rules(self) -> list[ReassignmentRule]:
        if self._list_failures:
            raise self._list_failures.pop(0)
        return list(self.rules)

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        self.rules.clear()
        self._list_failures.clear()
