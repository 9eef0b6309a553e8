"""
Object lister - live listing of one location on one backend.
"""

from bucketbridge.core.logger import get_logger
from bucketbridge.storage.base import StorageBackend
from bucketbridge.storage.core import ListError
from bucketbridge.storage.types import ObjectDescriptor

logger = get_logger(__name__)


class ObjectLister:
    """
    Lists a folder (self-hosted) or bucket (managed).

    Descriptors come back in the backend's own order; managed listings are
    newest first. Any failure surfaces as ListError.
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def list(self, location: str, limit: int | None = None) -> list[ObjectDescriptor]:
        try:
            descriptors = await self.backend.list(location, limit=limit)
        except ListError:
            raise
        except Exception as e:
            logger.warning(f"Listing {location!r} on {self.backend.name} failed: {e}")
            msg = getattr(e, "message", None) or str(e) or type(e).__name__
            raise ListError(msg, backend=self.backend.name, location=location) from e

        logger.debug(f"Listed {len(descriptors)} object(s) in {location!r} on {self.backend.name}")
        return descriptors
