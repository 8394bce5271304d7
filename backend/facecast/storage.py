"""
Blob storage for uploaded recordings, character images and generated videos.

Objects are written to one S3-compatible bucket and served from
`S3_PUBLIC_BASE_URL`; provider URLs are never treated as permanent.
"""
import os
import uuid
from typing import Any, Dict, Optional

import boto3
import httpx

from .config import Settings
from .exceptions import BlobStorageError
from .logger import logger

ALLOWED_UPLOAD_CONTENT_TYPES = (
    "video/webm",
    "video/mp4",
    "video/quicktime",
    "video/x-m4v",
    "video/mpeg",
    "video/3gpp",
    "video/3gpp2",
    "application/octet-stream",
    "image/jpeg",
    "image/png",
    "image/webp",
)


def make_s3_client(settings: Settings):
    return boto3.client(
        "s3",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_REGION_NAME,
        endpoint_url=settings.AWS_ENDPOINT_URL,
    )


def random_suffix_key(prefix: str, filename: str) -> str:
    base, ext = os.path.splitext(os.path.basename(filename or "upload"))
    base = base or "upload"
    return f"{prefix.strip('/')}/{base}-{uuid.uuid4().hex[:12]}{ext}"


class BlobStore:
    def __init__(self, s3_client, bucket: str, public_base_url: str = "", endpoint_url: Optional[str] = None):
        self.s3 = s3_client
        self.bucket = bucket
        self.public_base_url = public_base_url
        self.endpoint_url = endpoint_url

    @classmethod
    def from_settings(cls, settings: Settings) -> "BlobStore":
        return cls(
            make_s3_client(settings),
            settings.S3_BUCKET_NAME,
            public_base_url=settings.S3_PUBLIC_BASE_URL,
            endpoint_url=settings.AWS_ENDPOINT_URL,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def put_bytes(self, key: str, data: bytes, content_type: str = "video/mp4") -> str:
        try:
            self.s3.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except Exception as e:
            logger.error(f"Failed to upload object to blob storage: {key}, error: {e}")
            raise BlobStorageError(f"Failed to store {key}: {e}")
        url = self.public_url(key)
        logger.info(f"Stored blob: {key}", extra={"key": key, "bytes": len(data), "url": url})
        return url

    def presigned_upload(
        self,
        filename: str,
        content_type: str,
        *,
        prefix: str = "uploads",
        max_bytes: int,
        expires: int,
    ) -> Dict[str, Any]:
        """
        Issue a scoped client upload: one key, one content type, bounded size.
        """
        key = random_suffix_key(prefix, filename)
        try:
            post = self.s3.generate_presigned_post(
                Bucket=self.bucket,
                Key=key,
                Fields={"Content-Type": content_type},
                Conditions=[
                    {"Content-Type": content_type},
                    ["content-length-range", 1, max_bytes],
                ],
                ExpiresIn=expires,
            )
        except Exception as e:
            logger.error(f"Failed to presign upload: {e}")
            raise BlobStorageError(f"Failed to issue upload token: {e}")
        return {
            "url": post["url"],
            "fields": post["fields"],
            "key": key,
            "publicUrl": self.public_url(key),
            "expiresIn": expires,
        }


async def fetch_remote(http: httpx.AsyncClient, url: str, timeout: float) -> bytes:
    """Download a remote asset; timeouts and non-2xx are storage errors."""
    try:
        resp = await http.get(url, timeout=timeout, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        raise BlobStorageError(f"Failed to fetch video: {type(e).__name__}: {e}")
    if resp.status_code >= 400:
        raise BlobStorageError(f"Failed to fetch video: HTTP {resp.status_code}")
    return resp.content
