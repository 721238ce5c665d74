"""Supabase adapters for the workflow ports."""

from taskvision.infrastructure.adapters.supabase.employee_directory import (
    SupabaseEmployeeDirectory,
)
from taskvision.infrastructure.adapters.supabase.errors import translate_api_error
from taskvision.infrastructure.adapters.supabase.proof_storage import (
    SupabaseProofStorage,
)
from taskvision.infrastructure.adapters.supabase.realtime_change_feed import (
    SupabaseRealtimeChangeFeed,
)
from taskvision.infrastructure.adapters.supabase.reassignment_log_repository import (
    SupabaseReassignmentLogRepository,
)
from taskvision.infrastructure.adapters.supabase.reassignment_rule_source import (
    SupabaseReassignmentRuleSource,
)
from taskvision.infrastructure.adapters.supabase.task_repository import (
    SupabaseTaskRepository,
)
from taskvision.infrastructure.adapters.supabase.verification_request_repository import (
    SupabaseVerificationRequestRepository,
)

__all__ = [
    "SupabaseEmployeeDirectory",
    "SupabaseProofStorage",
    "SupabaseRealtimeChangeFeed",
    "SupabaseReassignmentLogRepository",
    "SupabaseReassignmentRuleSource",
    "SupabaseTaskRepository",
    "SupabaseVerificationRequestRepository",
    "translate_api_error",
]
