"""
Upload coordinator: push a batch of normalized images to the blob store

Parallel mode keeps every upload pending at once on the event loop;
sequential mode starts upload i+1 only after upload i has resolved.
Either way the returned URLs follow input order. The first failure fails
the batch and cancels the uploads still running; blobs that already
finished are left in place.
"""

import asyncio
import threading
import time
from typing import Callable, List, Optional, Sequence

from ..core.config import settings
from ..core.exceptions import TransportException
from ..core.logging_config import get_logger
from ..models.upload_models import NormalizedImage, UploadBatch
from .blob_store import BlobStore

logger = get_logger("upload_coordinator")

PARALLEL = "parallel"
SEQUENTIAL = "sequential"

ProgressListener = Callable[[UploadBatch], None]


class DestinationNamer:
    """Build {prefix}/{owner}/{stamp}_{filename} with a strictly increasing stamp"""

    def __init__(self, prefix: str = "reports", clock: Callable[[], float] = time.time):
        self.prefix = prefix.strip("/")
        self._clock = clock
        self._last_stamp = 0
        self._lock = threading.Lock()

    def next_stamp(self) -> int:
        with self._lock:
            stamp = max(int(self._clock() * 1000), self._last_stamp + 1)
            self._last_stamp = stamp
            return stamp

    def path_for(self, owner_id: str, filename: str) -> str:
        return f"{self.prefix}/{owner_id}/{self.next_stamp()}_{filename}"


class UploadCoordinator:
    """Drive one batch of uploads and aggregate their progress"""

    def __init__(
        self,
        store: BlobStore,
        mode: Optional[str] = None,
        max_files: Optional[int] = None,
        namer: Optional[DestinationNamer] = None
    ):
        self.store = store
        self.mode = mode or settings.upload_mode
        if self.mode not in (PARALLEL, SEQUENTIAL):
            raise ValueError(f"Unknown upload mode: {self.mode}")
        self.max_files = max_files or settings.max_files
        self.namer = namer or DestinationNamer(settings.upload_path_prefix)

    async def upload_all(
        self,
        images: Sequence[NormalizedImage],
        owner_id: str,
        on_progress: Optional[ProgressListener] = None
    ) -> List[str]:
        """
        Upload every image and return their URLs in input order

        Args:
            images: 1..max_files normalized images
            owner_id: Identifier used in the destination path
            on_progress: Called with the batch after every task event

        Returns:
            List of remote URLs, index-aligned with images

        Raises:
            TransportException: if any single upload fails
        """
        if not images:
            raise ValueError("No images to upload")
        if len(images) > self.max_files:
            raise ValueError(f"At most {self.max_files} images can be uploaded at once")

        batch = UploadBatch.create(len(images))
        paths = [self.namer.path_for(owner_id, image.filename) for image in images]
        logger.info(f"⬆️ Uploading {len(images)} image(s) for {owner_id} ({self.mode})")

        if self.mode == PARALLEL:
            tasks = [
                asyncio.ensure_future(self._upload_one(batch, index, image, paths[index], on_progress))
                for index, image in enumerate(images)
            ]
            try:
                urls = await asyncio.gather(*tasks)
            except BaseException:
                # A failed batch must not keep reporting progress
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            urls = []
            for index, image in enumerate(images):
                urls.append(await self._upload_one(batch, index, image, paths[index], on_progress))

        logger.info(f"✅ Uploaded {len(urls)} image(s) for {owner_id}")
        return list(urls)

    async def _upload_one(
        self,
        batch: UploadBatch,
        index: int,
        image: NormalizedImage,
        path: str,
        on_progress: Optional[ProgressListener]
    ) -> str:
        batch.start(index, image.size)
        url = None
        try:
            async for snapshot in self.store.upload(path, image.data, image.content_type):
                if snapshot.url:
                    url = snapshot.url
                else:
                    batch.record_progress(index, snapshot.bytes_transferred, snapshot.total_bytes)
                    _notify(on_progress, batch)
            if not url:
                raise TransportException(f"Upload of image {index + 1} finished without a URL", {"path": path})
        except TransportException:
            batch.fail(index)
            logger.error(f"❌ Upload error for image {index + 1}/{len(batch)} ({path})")
            raise
        except Exception as e:
            batch.fail(index)
            logger.error(f"❌ Upload error for image {index + 1}/{len(batch)} ({path}): {e}")
            raise TransportException(f"Upload failed for image {index + 1}: {e}", {"path": path}) from e

        batch.complete(index, url)
        _notify(on_progress, batch)
        return url


def _notify(listener: Optional[ProgressListener], batch: UploadBatch) -> None:
    if listener is None:
        return
    try:
        listener(batch)
    except Exception as e:
        logger.warning(f"⚠️ Progress listener failed: {e}")
