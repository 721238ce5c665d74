"""Proof photo upload port."""

from typing import Protocol
from uuid import UUID


class ProofUploadPort(Protocol):
    """Port for storing completion proof photos."""

    async def upload(self, task_id: UUID, content: bytes, content_type: str) -> str:
        """Store a proof photo.

        Args:
            task_id: Task the proof belongs to.
            content: Raw image bytes.
            content_type: MIME type of the image (e.g. "image/jpeg").

        Returns:
            An opaque reference (public URL) to the stored photo.

        Raises:
            TaskStoreError: If the upload failed.
        """
        ...
