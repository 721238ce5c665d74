"""Workflow, storage and push delivery configuration.

Values come from environment variables so deployments can tune the
reassignment engine without code changes.

Environment Variables:
- TASKVISION_SPAWN_COUNTERPART: Create derivative tasks on rejection (default: true)
- TASKVISION_ESCALATION_THRESHOLD: Fallback rejection count that escalates
  tasks no rule covers (default: 0 = disabled, max: 20)
- TASKVISION_DERIVATIVE_TITLE_SUFFIX: Suffix for derivative task titles
- SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY: Backend credentials
- TASKVISION_PROOF_BUCKET: Storage bucket for completion photos (default: task-photos)
- TASKVISION_PUSH_FUNCTION: Edge function that fans out push messages
- TASKVISION_PUSH_ENDPOINT: Explicit push endpoint, overrides the function URL
- TASKVISION_RELAY_ENDPOINT: Messaging relay endpoint; when set alongside push,
  events go out through both
- TASKVISION_PUSH_TIMEOUT_SECONDS: Push request timeout (default: 10, min: 1, max: 60)
- TASKVISION_PUSH_MAX_RETRIES: Push retry attempts (default: 3, min: 0, max: 10)
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass

from taskvision.domain.models.reassignment_policy import (
    DEFAULT_DERIVATIVE_TITLE_SUFFIX,
    DEFAULT_REASSIGNMENT_RULES,
    ReassignmentPolicy,
    ReassignmentRule,
)

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    return default


def _clamp(value: int | float, low: int | float, high: int | float) -> int | float:
    return max(low, min(value, high))


# =============================================================================
# Reassignment Configuration
# =============================================================================

# 0 disables the fallback threshold; rules still apply
DEFAULT_ESCALATION_THRESHOLD = 0
MIN_ESCALATION_THRESHOLD = 0
MAX_ESCALATION_THRESHOLD = 20

# =============================================================================
# Push Delivery Configuration
# =============================================================================

DEFAULT_PROOF_BUCKET = "task-photos"
DEFAULT_PUSH_FUNCTION = "send-push-notification"

DEFAULT_PUSH_TIMEOUT_SECONDS = 10.0
MIN_PUSH_TIMEOUT_SECONDS = 1.0
MAX_PUSH_TIMEOUT_SECONDS = 60.0

DEFAULT_PUSH_MAX_RETRIES = 3
MIN_PUSH_MAX_RETRIES = 0
MAX_PUSH_MAX_RETRIES = 10


@dataclass(frozen=True)
class WorkflowConfig:
    """Configuration for the rejection and reassignment workflow.

    Attributes:
        spawn_counterpart: Create a derivative task for the counterpart tier.
        escalation_threshold: Fallback rejection count for escalation
            (0 disables it).
        derivative_title_suffix: Appended to derivative task titles.
    """

    spawn_counterpart: bool = True
    escalation_threshold: int = DEFAULT_ESCALATION_THRESHOLD
    derivative_title_suffix: str = DEFAULT_DERIVATIVE_TITLE_SUFFIX

    def __post_init__(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any value is outside its allowed range.
        """
        if not (
            MIN_ESCALATION_THRESHOLD
            <= self.escalation_threshold
            <= MAX_ESCALATION_THRESHOLD
        ):
            raise ValueError(
                f"escalation_threshold must be between {MIN_ESCALATION_THRESHOLD} "
                f"and {MAX_ESCALATION_THRESHOLD}, got {self.escalation_threshold}"
            )
        if not self.derivative_title_suffix.strip():
            raise ValueError("derivative_title_suffix must not be blank")

    @classmethod
    def from_environment(cls) -> WorkflowConfig:
        """Create configuration from environment variables.

        Out-of-range values are clamped and blank suffixes fall back to
        the default.
        """
        threshold = _get_int_env(
            "TASKVISION_ESCALATION_THRESHOLD",
            DEFAULT_ESCALATION_THRESHOLD,
        )
        # Clamp to valid range
        threshold = int(
            _clamp(threshold, MIN_ESCALATION_THRESHOLD, MAX_ESCALATION_THRESHOLD)
        )

        suffix = os.environ.get("TASKVISION_DERIVATIVE_TITLE_SUFFIX", "")
        if not suffix.strip():
            suffix = DEFAULT_DERIVATIVE_TITLE_SUFFIX

        return cls(
            spawn_counterpart=_get_bool_env("TASKVISION_SPAWN_COUNTERPART", True),
            escalation_threshold=threshold,
            derivative_title_suffix=suffix,
        )

    def to_policy(
        self,
        rules: Iterable[ReassignmentRule] | None = None,
    ) -> ReassignmentPolicy:
        """Build the reassignment policy this configuration describes.

        Args:
            rules: Escalation rules, already merged with the defaults.
                None uses the built-in rules.
        """
        return ReassignmentPolicy(
            spawn_counterpart=self.spawn_counterpart,
            derivative_title_suffix=self.derivative_title_suffix,
            escalation_threshold=self.escalation_threshold or None,
            rules=DEFAULT_REASSIGNMENT_RULES if rules is None else tuple(rules),
        )


@dataclass(frozen=True)
class SupabaseConfig:
    """Backend connection settings."""

    url: str
    service_role_key: str
    proof_bucket: str = DEFAULT_PROOF_BUCKET
    push_function: str = DEFAULT_PUSH_FUNCTION

    def __post_init__(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"url must be an http(s) URL, got {self.url!r}")
        if not self.service_role_key:
            raise ValueError("service_role_key must not be empty")
        if not self.proof_bucket:
            raise ValueError("proof_bucket must not be empty")

    @property
    def push_function_url(self) -> str:
        return f"{self.url.rstrip('/')}/functions/v1/{self.push_function}"

    @classmethod
    def from_environment(cls) -> SupabaseConfig | None:
        """Create configuration from environment variables.

        Returns:
            None when SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset.
        """
        url = os.environ.get("SUPABASE_URL", "").strip()
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()
        if not url or not key:
            return None
        return cls(
            url=url,
            service_role_key=key,
            proof_bucket=os.environ.get("TASKVISION_PROOF_BUCKET", DEFAULT_PROOF_BUCKET),
            push_function=os.environ.get("TASKVISION_PUSH_FUNCTION", DEFAULT_PUSH_FUNCTION),
        )


@dataclass(frozen=True)
class NotificationConfig:
    """Push delivery settings.

    Attributes:
        endpoint: URL accepting push payloads (None disables HTTP push).
        relay_endpoint: Messaging relay accepting the same payloads
            (None disables the relay).
        timeout_seconds: Per-request timeout.
        max_retries: Retries after the first attempt.
    """

    endpoint: str | None = None
    relay_endpoint: str | None = None
    timeout_seconds: float = DEFAULT_PUSH_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_PUSH_MAX_RETRIES

    def __post_init__(self) -> None:
        for name, url in (("endpoint", self.endpoint), ("relay_endpoint", self.relay_endpoint)):
            if url is not None and not url.startswith(("http://", "https://")):
                raise ValueError(f"{name} must be an http(s) URL, got {url!r}")
        if not (MIN_PUSH_TIMEOUT_SECONDS <= self.timeout_seconds <= MAX_PUSH_TIMEOUT_SECONDS):
            raise ValueError(
                f"timeout_seconds must be between {MIN_PUSH_TIMEOUT_SECONDS} "
                f"and {MAX_PUSH_TIMEOUT_SECONDS}, got {self.timeout_seconds}"
            )
        if not (MIN_PUSH_MAX_RETRIES <= self.max_retries <= MAX_PUSH_MAX_RETRIES):
            raise ValueError(
                f"max_retries must be between {MIN_PUSH_MAX_RETRIES} "
                f"and {MAX_PUSH_MAX_RETRIES}, got {self.max_retries}"
            )

    @classmethod
    def from_environment(
        cls,
        supabase: SupabaseConfig | None = None,
    ) -> NotificationConfig:
        """Create configuration from environment variables.

        The endpoint falls back to the backend's push function when
        TASKVISION_PUSH_ENDPOINT is unset.
        """
        endpoint = os.environ.get("TASKVISION_PUSH_ENDPOINT", "").strip() or None
        if endpoint is None and supabase is not None:
            endpoint = supabase.push_function_url

        timeout = float(
            _clamp(
                _get_float_env(
                    "TASKVISION_PUSH_TIMEOUT_SECONDS", DEFAULT_PUSH_TIMEOUT_SECONDS
                ),
                MIN_PUSH_TIMEOUT_SECONDS,
                MAX_PUSH_TIMEOUT_SECONDS,
            )
        )
        retries = int(
            _clamp(
                _get_int_env("TASKVISION_PUSH_MAX_RETRIES", DEFAULT_PUSH_MAX_RETRIES),
                MIN_PUSH_MAX_RETRIES,
                MAX_PUSH_MAX_RETRIES,
            )
        )
        return cls(
            endpoint=endpoint,
            relay_endpoint=os.environ.get("TASKVISION_RELAY_ENDPOINT", "").strip() or None,
            timeout_seconds=timeout,
            max_retries=retries,
        )


# Pre-defined configurations

DEFAULT_WORKFLOW_CONFIG = WorkflowConfig()

# Fallback threshold on so tests cover rule-less tasks too
TEST_WORKFLOW_CONFIG = WorkflowConfig(
    spawn_counterpart=True,
    escalation_threshold=3,
)

# Counterparts disabled, recycle only
RECYCLE_ONLY_WORKFLOW_CONFIG = WorkflowConfig(spawn_counterpart=False)
