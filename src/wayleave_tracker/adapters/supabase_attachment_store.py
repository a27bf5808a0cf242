"""Supabase Storage bucket for record attachments."""

import logging
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

import httpx
from supabase import AsyncClient, StorageException

from wayleave_tracker.adapters.supabase_errors import error_message
from wayleave_tracker.domain.backend import BackendResult
from wayleave_tracker.services.records import AttachmentStore

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseAttachmentStore(AttachmentStore):
    """Stores attachments in a public Supabase Storage bucket."""

    client: AsyncClient
    bucket: str

    async def upload(self, path: str, content: bytes) -> BackendResult[None]:
        """Upload file bytes to ``path`` in the bucket."""
        try:
            await self.client.storage.from_(self.bucket).upload(path, content)
        except (StorageException, httpx.HTTPError) as exc:
            _logger.warning("Upload of %s failed: %s", path, exc)
            return BackendResult(error=error_message(exc))
        return BackendResult()

    async def public_uri(self, path: str) -> str:
        """Return the public URL of an object in the bucket."""
        return await self.client.storage.from_(self.bucket).get_public_url(path)

    async def remove(self, uris: list[str]) -> BackendResult[None]:
        """Remove the objects behind public URLs; partial removal is an error."""
        paths = [path_from_public_uri(uri, self.bucket) for uri in uris]
        try:
            removed = await self.client.storage.from_(self.bucket).remove(paths)
        except (StorageException, httpx.HTTPError) as exc:
            return BackendResult(error=error_message(exc))
        removed_count = len(removed or [])
        if removed_count < len(paths):
            return BackendResult(
                error=f"Removed {removed_count} of {len(paths)} attachments."
            )
        return BackendResult()


def path_from_public_uri(uri: str, bucket: str) -> str:
    """Return the object path inside ``bucket`` for a public URL.

    Values that are not URLs are treated as paths already.
    """
    marker = f"/object/public/{bucket}/"
    parsed = urlsplit(uri)
    if not parsed.scheme:
        return uri
    _, found, path = parsed.path.partition(marker)
    if not found:
        return uri
    return unquote(path)
