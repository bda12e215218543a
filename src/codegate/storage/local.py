"""Object storage backed by a local directory."""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Union

from ..exceptions import InputError, NotFoundError
from .base import ObjectStorage

logger = logging.getLogger(__name__)


class LocalObjectStorage(ObjectStorage):
    """
    Stores objects as files under root/bucket/key.

    GOTCHA: Presigned URLs are file:// links with an informational expiry
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, bucket: str, key: str) -> Path:
        base = (self.root / bucket).resolve()
        path = (base / key).resolve()
        if base != path and base not in path.parents:
            raise InputError(f"Object key escapes bucket: {key}")
        return path

    async def put(self, bucket: str, key: str, data: bytes) -> str:
        path = self._path(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug(f"Stored {len(data)} bytes at {bucket}/{key}")
        return f"{bucket}/{key}"

    async def get(self, bucket: str, key: str) -> bytes:
        path = self._path(bucket, key)
        if not path.is_file():
            raise NotFoundError(f"Object {bucket}/{key} not found")
        return path.read_bytes()

    async def presigned_url(self, bucket: str, key: str, expires_in: int = 3600) -> str:
        expires = datetime.now() + timedelta(seconds=expires_in)
        return f"{self._path(bucket, key).as_uri()}?expires={int(expires.timestamp())}"
