"""Uploads binary files to the S3 bucket and hands back their public URL."""
import logging
import time

import httpx

logger = logging.getLogger(__name__)


class BlobUploadError(Exception):
    """Raised when the blob store rejects or fails an upload."""
    pass


class BlobStorage:
    def __init__(self, bucket_name: str, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self.bucket_name = bucket_name
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def url_for(self, folder: str, filename: str) -> str:
        stamped = f'{int(time.time() * 1000)}-{filename}'
        return f'https://{self.bucket_name}.s3.amazonaws.com/uploaded/{folder}/{stamped}'

    async def upload(self, folder: str, filename: str, content: bytes, content_type: str) -> str:
        """PUT content under folder and return the stable URL."""
        url = self.url_for(folder, filename)
        try:
            response = await self.client.put(
                url, content=content, headers={'Content-Type': content_type}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BlobUploadError(f'Upload of {filename} failed: {e}') from e

        logger.info(f'Uploaded {filename} ({len(content)} bytes) to {url}')
        return url

    async def aclose(self):
        await self.client.aclose()
