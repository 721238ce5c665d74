"""Completion photo upload to Supabase storage."""

from __future__ import annotations

from uuid import UUID

from storage3.utils import StorageException
from supabase import AsyncClient

from taskvision.application.ports.proof_upload import ProofUploadPort
from taskvision.application.ports.time_authority import TimeAuthorityProtocol
from taskvision.application.services.base import LoggingMixin
from taskvision.domain.errors.storage import TaskStoreError

DEFAULT_PROOF_BUCKET = "task-photos"

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/heic": "heic",
}


def proof_path(task_id: UUID, timestamp_ms: int, content_type: str) -> str:
    """Object path of a completion photo: ``{task_id}/{timestamp}-proof.{ext}``."""
    extension = _EXTENSIONS.get(content_type.lower(), "jpg")
    return f"{task_id}/{timestamp_ms}-proof.{extension}"


class SupabaseProofStorage(ProofUploadPort, LoggingMixin):
    """Uploads completion photos and returns their public URL."""

    def __init__(
        self,
        client: AsyncClient,
        time_authority: TimeAuthorityProtocol,
        bucket: str = DEFAULT_PROOF_BUCKET,
    ) -> None:
        self._client = client
        self._time = time_authority
        self._bucket = bucket
        self._init_logger(component="storage")

    async def upload(self, task_id: UUID, content: bytes, content_type: str) -> str:
        if not content:
            raise TaskStoreError("upload", self._bucket, "empty photo")
        timestamp_ms = int(self._time.utcnow().timestamp() * 1000)
        path = proof_path(task_id, timestamp_ms, content_type)
        log = self._log_operation("upload_proof", task_id=str(task_id), path=path)

        bucket = self._client.storage.from_(self._bucket)
        try:
            await bucket.upload(
                path,
                content,
                {"content-type": content_type, "upsert": "false"},
            )
            url = await bucket.get_public_url(path)
        except StorageException as exc:
            log.warning("proof_upload_failed", error=str(exc))
            raise TaskStoreError("upload", self._bucket, str(exc)) from exc

        log.info("proof_uploaded")
        return url
