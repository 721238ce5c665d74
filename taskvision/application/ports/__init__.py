"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.

Available ports:
- TaskRepositoryProtocol: Task store
- VerificationRequestRepositoryProtocol: Verification request store
- ReassignmentLogRepositoryProtocol: Append-only reassignment audit log
- ReassignmentRuleSourceProtocol: Stored escalation rules
- EmployeeDirectoryProtocol: Read-only employee lookups
- NotificationDispatcherPort: Notification delivery
- ProofUploadPort: Proof photo storage
- ChangeFeedPort: Per-table change notification
- TimeAuthorityProtocol: Timestamps
"""

from taskvision.application.ports.change_feed import (
    ChangeFeedPort,
    ChangeHandler,
    ChangeSubscription,
)
from taskvision.application.ports.employee_directory import EmployeeDirectoryProtocol
from taskvision.application.ports.notification_dispatcher import (
    NotificationDispatcherPort,
)
from taskvision.application.ports.proof_upload import ProofUploadPort
from taskvision.application.ports.reassignment_log_repository import (
    REASSIGNMENT_LOGS_TABLE,
    ReassignmentLogRepositoryProtocol,
)
from taskvision.application.ports.reassignment_rule_source import (
    REASSIGNMENT_RULES_TABLE,
    ReassignmentRuleSourceProtocol,
)
from taskvision.application.ports.task_repository import (
    TASKS_TABLE,
    TaskRepositoryProtocol,
)
from taskvision.application.ports.time_authority import TimeAuthorityProtocol
from taskvision.application.ports.verification_request_repository import (
    VERIFICATION_REQUESTS_TABLE,
    VerificationRequestRepositoryProtocol,
)

__all__: list[str] = [
    "REASSIGNMENT_LOGS_TABLE",
    "REASSIGNMENT_RULES_TABLE",
    "TASKS_TABLE",
    "VERIFICATION_REQUESTS_TABLE",
    "ChangeFeedPort",
    "ChangeHandler",
    "ChangeSubscription",
    "EmployeeDirectoryProtocol",
    "NotificationDispatcherPort",
    "ProofUploadPort",
    "ReassignmentLogRepositoryProtocol",
    "ReassignmentRuleSourceProtocol",
    "TaskRepositoryProtocol",
    "TimeAuthorityProtocol",
    "VerificationRequestRepositoryProtocol",
]
