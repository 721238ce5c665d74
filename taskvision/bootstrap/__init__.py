"""Bootstrap wiring: logging setup and the workflow container."""

from taskvision.bootstrap.logging import configure_structlog
from taskvision.bootstrap.workflow import (
    WorkflowContainer,
    build_dispatcher,
    build_stub_container,
    build_supabase_container,
    get_workflow_container,
    load_reassignment_rules,
    reset_workflow_container,
    set_workflow_container,
    wire_workflow,
)

__all__ = [
    "WorkflowContainer",
    "build_dispatcher",
    "build_stub_container",
    "build_supabase_container",
    "configure_structlog",
    "get_workflow_container",
    "load_reassignment_rules",
    "reset_workflow_container",
    "set_workflow_container",
    "wire_workflow",
]
