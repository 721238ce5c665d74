"""Reassignment rule source port (read-only)."""

from __future__ import annotations

from typing import Protocol

from taskvision.domain.models.reassignment_policy import ReassignmentRule

REASSIGNMENT_RULES_TABLE = "reassignment_rules"


class ReassignmentRuleSourceProtocol(Protocol):
    """Protocol for stored escalation rules."""

    async def list_rules(self) -> list[ReassignmentRule]:
        """Return every stored rule.

        Raises:
            TaskStoreError: If the rules could not be read.
        """
        ...
