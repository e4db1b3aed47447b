# core/blob_store.py

import asyncio
import base64
import binascii
import mimetypes
import re
from typing import Callable, Optional, Tuple, Union

import boto3

from core.config import settings
from core.errors import InvalidInput, UpstreamFailure, upstream_failure
from core.logging_config import get_logger

log = get_logger("blobs")

DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;base64)?,(?P<payload>.*)$", re.DOTALL)


def get_s3() -> Tuple["boto3.client", str, str]:
    """
    Get S3 client, bucket name, and region.
    Returns: (s3_client, bucket_name, region)
    Raises UpstreamFailure if AWS credentials are missing.
    """
    key = settings.AWS_ACCESS_KEY_ID
    secret = settings.AWS_SECRET_ACCESS_KEY
    bucket = settings.AWS_BUCKET_NAME
    region = settings.AWS_REGION

    if not all([key, secret, bucket]):
        raise UpstreamFailure("Blob storage not configured")

    client = boto3.client(
        "s3",
        aws_access_key_id=key,
        aws_secret_access_key=secret,
        region_name=region,
    )

    return client, bucket, region


# -----------------------------------------------------
# Payload decoding: raw bytes, base64, or data URI
# -----------------------------------------------------
def decode_payload(data: Union[bytes, str], content_type: Optional[str] = None) -> Tuple[bytes, Optional[str]]:
    if isinstance(data, (bytes, bytearray)):
        if not data:
            raise InvalidInput("Image data is empty")
        return bytes(data), content_type

    if not isinstance(data, str) or not data.strip():
        raise InvalidInput("Invalid image data provided")

    text = data.strip()
    match = DATA_URI.match(text)
    if match:
        content_type = match.group("mime") or content_type
        text = match.group("payload")

    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput("Image data must be base64 encoded") from e

    if not raw:
        raise InvalidInput("Image data is empty")
    return raw, content_type


def object_key(folder_path: str, public_id: str, content_type: Optional[str]) -> str:
    safe_id = re.sub(r"[^A-Za-z0-9._-]", "_", public_id)
    ext = mimetypes.guess_extension(content_type) if content_type else None
    if ext and not safe_id.endswith(ext):
        safe_id = f"{safe_id}{ext}"
    return f"{folder_path.strip('/')}/{safe_id}"


# ============================================================
# Blob Store
# ============================================================
class BlobStore:
    def __init__(self, s3_factory: Callable[[], Tuple[object, str, str]] = get_s3, cdn_base_url: Optional[str] = None):
        self._s3_factory = s3_factory
        self.cdn_base_url = cdn_base_url if cdn_base_url is not None else settings.CDN_BASE_URL

    def public_url(self, bucket: str, region: str, key: str) -> str:
        if self.cdn_base_url:
            return f"{self.cdn_base_url.rstrip('/')}/{key}"
        return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"

    async def upload(
        self,
        data: Union[bytes, str],
        folder_path: str,
        public_id: str,
        content_type: Optional[str] = None,
    ) -> dict:
        """
        Upload (overwriting any previous object with the same id) and
        return {"secure_url", "key"}.
        """
        body, content_type = decode_payload(data, content_type)
        key = object_key(folder_path, public_id, content_type)

        s3, bucket, region = self._s3_factory()

        extra = {"ContentType": content_type} if content_type else {}
        try:
            await asyncio.to_thread(
                s3.put_object,
                Bucket=bucket,
                Key=key,
                Body=body,
                **extra,
            )
        except Exception as e:
            raise upstream_failure(e, "Image upload") from e

        url = self.public_url(bucket, region, key)
        log.info(f"Uploaded {len(body)} bytes to {key}")
        return {"secure_url": url, "key": key}
