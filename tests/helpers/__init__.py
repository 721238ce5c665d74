"""Test helpers for TaskVision tests.

Helpers:
    FakeTimeAuthority: Controllable time authority for deterministic tests
    WorkflowHarness / build_harness: Stub-backed workflow with seeded employees

Usage:
    from tests.helpers import FakeTimeAuthority, build_harness
"""

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.workflow_harness import WorkflowHarness, build_harness

__all__ = ["FakeTimeAuthority", "WorkflowHarness", "build_harness"]
