"""Proof upload stub keeping photos in memory."""

from __future__ import annotations

from uuid import UUID

from taskvision.application.ports.proof_upload import ProofUploadPort
from taskvision.domain.errors.storage import TaskStoreError

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


class ProofUploadStub(ProofUploadPort):
    """In-memory ProofUploadPort.

    Attributes:
        uploads: Stored content by returned reference.
        fail_uploads: When True, upload raises TaskStoreError.
    """

    def __init__(self, base_url: str = "memory://task-photos") -> None:
        self._base_url = base_url
        self.uploads: dict[str, bytes] = {}
        self.fail_uploads = False

    async def upload(self, task_id: UUID, content: bytes, content_type: str) -> str:
        if self.fail_uploads:
            raise TaskStoreError("upload", "task-photos", "injected failure")
        extension = _EXTENSIONS.get(content_type, "bin")
        reference = f"{self._base_url}/{task_id}/{len(self.uploads) + 1}-proof.{extension}"
        self.uploads[reference] = content
        return reference

    def clear(self) -> None:
        """Clear stored uploads (for testing)."""
        self.uploads.clear()
        self.fail_uploads = False
