"""
Pytest configuration and shared fixtures for TaskVision tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Workflow scenarios go in tests/integration/
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.workflow_harness import WorkflowHarness, build_harness


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from taskvision import __version__

    return __version__


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    """Clock advancing one second per read."""
    return FakeTimeAuthority(auto_advance=timedelta(seconds=1))


@pytest.fixture
def harness() -> WorkflowHarness:
    """Stub-backed workflow with a seeded organisation."""
    return build_harness()
