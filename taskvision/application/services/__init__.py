"""Application services for the task workflow.

- TaskLifecycleService: every workflow operation on a task
- VerificationLedgerService: verification requests and review queues
- TaskReassignmentService: what happens after a rejection
- TaskNotificationService: notification events at workflow boundaries
- OptionalFieldWriter: schema-tolerant writes
"""

from taskvision.application.services.optional_field_writer import (
    DEFAULT_OPTIONAL_COLUMNS,
    OptionalFieldWriter,
)
from taskvision.application.services.reassignment_service import (
    TaskReassignmentService,
)
from taskvision.application.services.task_lifecycle_service import (
    TaskLifecycleService,
)
from taskvision.application.services.task_notification_service import (
    TaskNotificationService,
)
from taskvision.application.services.verification_ledger_service import (
    VerificationLedgerService,
)

__all__: list[str] = [
    "DEFAULT_OPTIONAL_COLUMNS",
    "OptionalFieldWriter",
    "TaskLifecycleService",
    "TaskNotificationService",
    "TaskReassignmentService",
    "VerificationLedgerService",
]
