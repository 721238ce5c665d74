"""Supabase implementation of the reassignment rule source.

Rows that do not map to a rule (an unknown priority, a negative
max_rejections) are skipped with a warning so one bad row does not
disable every stored rule.
"""

from __future__ import annotations

from postgrest.exceptions import APIError
from supabase import AsyncClient

from taskvision.application.ports.reassignment_rule_source import (
    REASSIGNMENT_RULES_TABLE,
    ReassignmentRuleSourceProtocol,
)
from taskvision.application.services.base import LoggingMixin
from taskvision.domain.models.reassignment_policy import ReassignmentRule
from taskvision.infrastructure.adapters.supabase.errors import translate_api_error
from taskvision.infrastructure.adapters.supabase.task_repository import coerce_rows


class SupabaseReassignmentRuleSource(ReassignmentRuleSourceProtocol, LoggingMixin):
    """Escalation rules backed by ``reassignment_rules``."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client
        self._init_logger(component="storage")

    async def list_rules(self) -> list[ReassignmentRule]:
        log = self._log_operation("list_rules")
        try:
            result = await self._client.table(REASSIGNMENT_RULES_TABLE).select("*").execute()
        except APIError as exc:
            raise translate_api_error(
                exc, operation="list_rules", table=REASSIGNMENT_RULES_TABLE
            ) from exc

        rules: list[ReassignmentRule] = []
        for row in coerce_rows(result.data):
            try:
                rules.append(ReassignmentRule.from_row(row))
            except (TypeError, ValueError) as exc:
                log.warning("reassignment_rule_skipped", row_id=row.get("id"), error=str(exc))
        log.debug("reassignment_rules_loaded", count=len(rules))
        return rules
