"""Results of reviewer decisions."""

from __future__ import annotations

from dataclasses import dataclass

from taskvision.domain.models.reassignment import ReassignmentResult
from taskvision.domain.models.task import Task
from taskvision.domain.models.verification_request import VerificationRequest


@dataclass(frozen=True)
class VerificationDisposition:
    """Outcome of an administrator's decision on a verification request.

    Attributes:
        request: The closed request.
        task: The task after the decision was applied.
        reassignment: Engine result for rejections, None for approvals.
    """

    request: VerificationRequest
    task: Task
    reassignment: ReassignmentResult | None = None


@dataclass(frozen=True)
class SubmissionReview:
    """Outcome of an administrator's review on the direct path.

    Attributes:
        task: The task after the decision was applied.
        reassignment: Engine result for rejections, None for approvals.
    """

    task: Task
    reassignment: ReassignmentResult | None = None
