"""Abstract base class for object storage."""

from abc import ABC, abstractmethod


class ObjectStorage(ABC):
    """Bucket/key blob storage for source snapshots and reports."""

    @abstractmethod
    async def put(self, bucket: str, key: str, data: bytes) -> str:
        """
        Store an object.

        Args:
            bucket: Bucket name
            key: Object key, may contain '/'
            data: Object content

        Returns:
            Storage reference of the object
        """
        pass

    @abstractmethod
    async def get(self, bucket: str, key: str) -> bytes:
        """
        Read an object.

        Raises:
            NotFoundError: If the object does not exist
        """
        pass

    @abstractmethod
    async def presigned_url(self, bucket: str, key: str, expires_in: int = 3600) -> str:
        pass
