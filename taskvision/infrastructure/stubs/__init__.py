"""In-memory stub implementations of the application ports.

These stubs back development wiring and the test suite. They are NOT
suitable for production use.
"""

from taskvision.infrastructure.stubs.change_feed_stub import (
    InMemoryChangeFeed,
    InMemoryChangeSubscription,
)
from taskvision.infrastructure.stubs.employee_directory_stub import EmployeeDirectoryStub
from taskvision.infrastructure.stubs.notification_dispatcher_stub import (
    NotificationDispatcherStub,
)
from taskvision.infrastructure.stubs.proof_upload_stub import ProofUploadStub
from taskvision.infrastructure.stubs.reassignment_log_repository_stub import (
    ReassignmentLogRepositoryStub,
)
from taskvision.infrastructure.stubs.reassignment_rule_source_stub import (
    ReassignmentRuleSourceStub,
)
from taskvision.infrastructure.stubs.task_repository_stub import TaskRepositoryStub
from taskvision.infrastructure.stubs.verification_request_repository_stub import (
    VerificationRequestRepositoryStub,
)

__all__: list[str] = [
    "EmployeeDirectoryStub",
    "InMemoryChangeFeed",
    "InMemoryChangeSubscription",
    "NotificationDispatcherStub",
    "ProofUploadStub",
    "ReassignmentLogRepositoryStub",
    "ReassignmentRuleSourceStub",
    "TaskRepositoryStub",
    "VerificationRequestRepositoryStub",
]
