"""Bootstrap wiring for the task workflow.

Builds a WorkflowContainer holding the services and the adapters behind
them. Without Supabase credentials the container is stub-backed, which is
what local development and the test suite use.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from dotenv import load_dotenv
from supabase import AsyncClient, acreate_client

from taskvision.application.ports.change_feed import ChangeFeedPort
from taskvision.application.ports.employee_directory import EmployeeDirectoryProtocol
from taskvision.application.ports.notification_dispatcher import (
    NotificationDispatcherPort,
)
from taskvision.application.ports.proof_upload import ProofUploadPort
from taskvision.application.ports.reassignment_log_repository import (
    ReassignmentLogRepositoryProtocol,
)
from taskvision.application.ports.reassignment_rule_source import (
    ReassignmentRuleSourceProtocol,
)
from taskvision.application.ports.task_repository import TaskRepositoryProtocol
from taskvision.application.ports.time_authority import TimeAuthorityProtocol
from taskvision.application.ports.verification_request_repository import (
    VerificationRequestRepositoryProtocol,
)
from taskvision.application.services.optional_field_writer import OptionalFieldWriter
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
from taskvision.config.workflow_config import (
    DEFAULT_WORKFLOW_CONFIG,
    NotificationConfig,
    SupabaseConfig,
    WorkflowConfig,
)
from taskvision.domain.exceptions import TaskVisionError
from taskvision.domain.models.reassignment_policy import (
    DEFAULT_REASSIGNMENT_RULES,
    ReassignmentRule,
    merge_rules,
)
from taskvision.infrastructure.adapters.notification import (
    FanOutNotificationDispatcher,
    HttpPushNotificationDispatcher,
)
from taskvision.infrastructure.adapters.supabase import (
    SupabaseEmployeeDirectory,
    SupabaseProofStorage,
    SupabaseRealtimeChangeFeed,
    SupabaseReassignmentLogRepository,
    SupabaseReassignmentRuleSource,
    SupabaseTaskRepository,
    SupabaseVerificationRequestRepository,
)
from taskvision.infrastructure.adapters.time_authority import SystemTimeAuthority
from taskvision.infrastructure.stubs import (
    EmployeeDirectoryStub,
    InMemoryChangeFeed,
    NotificationDispatcherStub,
    ProofUploadStub,
    ReassignmentLogRepositoryStub,
    TaskRepositoryStub,
    VerificationRequestRepositoryStub,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class WorkflowContainer:
    """Wired workflow services and their adapters."""

    lifecycle: TaskLifecycleService
    ledger: VerificationLedgerService
    reassignment: TaskReassignmentService
    notifier: TaskNotificationService
    tasks: TaskRepositoryProtocol
    requests: VerificationRequestRepositoryProtocol
    reassignment_log: ReassignmentLogRepositoryProtocol
    directory: EmployeeDirectoryProtocol
    dispatcher: NotificationDispatcherPort
    change_feed: ChangeFeedPort
    time_authority: TimeAuthorityProtocol
    proof_upload: ProofUploadPort | None = None


def wire_workflow(
    *,
    tasks: TaskRepositoryProtocol,
    requests: VerificationRequestRepositoryProtocol,
    reassignment_log: ReassignmentLogRepositoryProtocol,
    directory: EmployeeDirectoryProtocol,
    dispatcher: NotificationDispatcherPort,
    change_feed: ChangeFeedPort,
    time_authority: TimeAuthorityProtocol,
    proof_upload: ProofUploadPort | None = None,
    config: WorkflowConfig = DEFAULT_WORKFLOW_CONFIG,
    rules: Iterable[ReassignmentRule] | None = None,
) -> WorkflowContainer:
    """Build the services over a set of adapters.

    One OptionalFieldWriter is shared by every service. Rules default to
    the built-in escalation rules.
    """
    writer = OptionalFieldWriter()
    notifier = TaskNotificationService(dispatcher, time_authority)
    ledger = VerificationLedgerService(
        requests, tasks, directory, time_authority, change_feed, writer=writer
    )
    reassignment = TaskReassignmentService(
        tasks,
        reassignment_log,
        directory,
        notifier,
        time_authority,
        writer=writer,
        policy=config.to_policy(rules),
    )
    lifecycle = TaskLifecycleService(
        tasks,
        ledger,
        reassignment,
        directory,
        notifier,
        time_authority,
        proof_upload=proof_upload,
        writer=writer,
    )
    return WorkflowContainer(
        lifecycle=lifecycle,
        ledger=ledger,
        reassignment=reassignment,
        notifier=notifier,
        tasks=tasks,
        requests=requests,
        reassignment_log=reassignment_log,
        directory=directory,
        dispatcher=dispatcher,
        change_feed=change_feed,
        time_authority=time_authority,
        proof_upload=proof_upload,
    )


def build_stub_container(
    config: WorkflowConfig = DEFAULT_WORKFLOW_CONFIG,
    time_authority: TimeAuthorityProtocol | None = None,
    rules: Iterable[ReassignmentRule] | None = None,
) -> WorkflowContainer:
    """Build a container over the in-memory stubs."""
    change_feed = InMemoryChangeFeed()
    return wire_workflow(
        tasks=TaskRepositoryStub(change_feed=change_feed),
        requests=VerificationRequestRepositoryStub(change_feed=change_feed),
        reassignment_log=ReassignmentLogRepositoryStub(),
        directory=EmployeeDirectoryStub(),
        dispatcher=NotificationDispatcherStub(),
        change_feed=change_feed,
        time_authority=time_authority or SystemTimeAuthority(),
        proof_upload=ProofUploadStub(),
        config=config,
        rules=rules,
    )


async def load_reassignment_rules(
    source: ReassignmentRuleSourceProtocol,
) -> tuple[ReassignmentRule, ...]:
    """Overlay the stored escalation rules on the built-in ones.

    A failed read keeps the built-in rules so the workflow still starts.
    """
    try:
        stored = await source.list_rules()
    except TaskVisionError as exc:
        logger.warning("reassignment_rules_unavailable", error=str(exc))
        return DEFAULT_REASSIGNMENT_RULES
    logger.info("reassignment_rules_loaded", stored=len(stored))
    return merge_rules(stored)


def build_dispatcher(
    supabase_config: SupabaseConfig,
    notification_config: NotificationConfig,
) -> NotificationDispatcherPort:
    """Pick the notification transport for the configured endpoints.

    Push and relay together fan out to both. With neither configured,
    events go to the recording stub.
    """
    channels: list[HttpPushNotificationDispatcher] = []
    if notification_config.endpoint:
        channels.append(
            HttpPushNotificationDispatcher(
                endpoint=notification_config.endpoint,
                api_key=supabase_config.service_role_key,
                timeout_seconds=notification_config.timeout_seconds,
                max_retries=notification_config.max_retries,
                channel="push",
            )
        )
    if notification_config.relay_endpoint:
        channels.append(
            HttpPushNotificationDispatcher(
                endpoint=notification_config.relay_endpoint,
                timeout_seconds=notification_config.timeout_seconds,
                max_retries=notification_config.max_retries,
                channel="relay",
            )
        )

    if not channels:
        logger.warning("push_endpoint_not_configured")
        return NotificationDispatcherStub()
    if len(channels) == 1:
        return channels[0]
    logger.info("notification_fan_out_enabled", channels=[c.channel for c in channels])
    return FanOutNotificationDispatcher(channels)


def build_supabase_container(
    client: AsyncClient,
    supabase_config: SupabaseConfig,
    config: WorkflowConfig = DEFAULT_WORKFLOW_CONFIG,
    notification_config: NotificationConfig | None = None,
    rules: Iterable[ReassignmentRule] | None = None,
) -> WorkflowContainer:
    """Build a container over Supabase adapters.

    Notification delivery follows build_dispatcher(); rules come from
    load_reassignment_rules() when the caller has them.
    """
    time_authority = SystemTimeAuthority()
    notification_config = notification_config or NotificationConfig.from_environment(
        supabase_config
    )

    return wire_workflow(
        tasks=SupabaseTaskRepository(client),
        requests=SupabaseVerificationRequestRepository(client),
        reassignment_log=SupabaseReassignmentLogRepository(client),
        directory=SupabaseEmployeeDirectory(client),
        dispatcher=build_dispatcher(supabase_config, notification_config),
        change_feed=SupabaseRealtimeChangeFeed(client),
        time_authority=time_authority,
        proof_upload=SupabaseProofStorage(
            client, time_authority, bucket=supabase_config.proof_bucket
        ),
        config=config,
        rules=rules,
    )


_container: WorkflowContainer | None = None


async def get_workflow_container() -> WorkflowContainer:
    """Get the workflow container, building it on first use.

    Loads ``.env`` and picks Supabase adapters when credentials are set.
    The Supabase container reads the stored escalation rules once here.
    """
    global _container
    if _container is None:
        load_dotenv()
        config = WorkflowConfig.from_environment()
        supabase_config = SupabaseConfig.from_environment()
        if supabase_config is None:
            logger.info("workflow_container_built", backend="stub")
            _container = build_stub_container(config)
        else:
            client = await acreate_client(
                supabase_config.url, supabase_config.service_role_key
            )
            rules = await load_reassignment_rules(SupabaseReassignmentRuleSource(client))
            logger.info("workflow_container_built", backend="supabase")
            _container = build_supabase_container(
                client, supabase_config, config, rules=rules
            )
    return _container


def set_workflow_container(container: WorkflowContainer) -> None:
    """Set custom container for testing."""
    global _container
    _container = container


def reset_workflow_container() -> None:
    """Reset the singleton (for testing)."""
    global _container
    _container = None
