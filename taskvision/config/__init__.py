"""Configuration module for TaskVision.

Available Configurations:
- WorkflowConfig: Reassignment engine tuning
- SupabaseConfig: Backend connection
- NotificationConfig: Push delivery
"""

from taskvision.config.workflow_config import (
    DEFAULT_WORKFLOW_CONFIG,
    RECYCLE_ONLY_WORKFLOW_CONFIG,
    TEST_WORKFLOW_CONFIG,
    NotificationConfig,
    SupabaseConfig,
    WorkflowConfig,
)

__all__ = [
    "WorkflowConfig",
    "SupabaseConfig",
    "NotificationConfig",
    "DEFAULT_WORKFLOW_CONFIG",
    "TEST_WORKFLOW_CONFIG",
    "RECYCLE_ONLY_WORKFLOW_CONFIG",
]
