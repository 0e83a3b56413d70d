"""
Payment proof intake: validation and storage.

Files go to S3-compatible object storage when it is configured, otherwise
to the local upload directory. Callers only consume the returned URL and
the storage backend tag.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, cast

import aiofiles
import aioboto3  # type: ignore

if TYPE_CHECKING:
    from types_aiobotocore_s3 import S3Client  # type: ignore

from core.config import (
    API_BASE_URL,
    UPLOAD_DIR,
    MAX_UPLOAD_SIZE_MB,
    S3_BUCKET,
    S3_REGION,
    S3_ACCESS_KEY,
    S3_SECRET_KEY,
    S3_ENDPOINT_URL,
    S3_CUSTOM_DOMAIN,
)
from core.constants import (
    ALLOWED_PROOF_MIME_TYPES,
    ALLOWED_PROOF_EXTENSIONS,
    PAYMENT_PROOF_FOLDER,
    STORAGE_BACKEND_LOCAL,
    STORAGE_BACKEND_S3,
)
from core.exceptions import FileUploadError
from utils.datetime_utils import studio_now

logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024

_EXTENSION_BY_MIME = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


@dataclass
class StoredFile:
    """Where a saved file ended up."""
    relative_path: str
    url: str
    storage: str


def validate_file(size: int, content_type: Optional[str], filename: Optional[str] = None) -> None:
    """
    Validate an uploaded file's type and size.

    Raises:
        FileUploadError: File is too large or not an allowed image type
    """
    if size <= 0:
        raise FileUploadError("Uploaded file is empty", {"filename": filename})

    if size > MAX_UPLOAD_SIZE_BYTES:
        raise FileUploadError(
            f"File too large (max {MAX_UPLOAD_SIZE_MB}MB)",
            {"filename": filename, "size": size, "max_size": MAX_UPLOAD_SIZE_BYTES},
        )

    if content_type not in ALLOWED_PROOF_MIME_TYPES:
        raise FileUploadError(
            "Invalid file type. Allowed: JPEG, PNG, GIF, WEBP",
            {"filename": filename, "content_type": content_type},
        )

    if filename:
        extension = os.path.splitext(filename)[1].lower()
        if extension and extension not in ALLOWED_PROOF_EXTENSIONS:
            raise FileUploadError(
                "Invalid file extension",
                {"filename": filename, "extension": extension},
            )


def build_proof_key(booking_id: str, payment_index: int, filename: str, content_type: str) -> str:
    """
    Storage key for a payment proof.

    Format: payment_proofs/{booking_id}/payment_{index}_{timestamp}{ext}
    """
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in ALLOWED_PROOF_EXTENSIONS:
        extension = _EXTENSION_BY_MIME.get(content_type, ".jpg")
    safe_booking_id = re.sub(r"[^A-Za-z0-9-]", "", booking_id)
    timestamp = studio_now().strftime("%Y%m%d%H%M%S")
    return f"{PAYMENT_PROOF_FOLDER}/{safe_booking_id}/payment_{payment_index}_{timestamp}{extension}"


class LocalStorageBackend:
    """Stores files under a local directory served at /uploads."""

    name = STORAGE_BACKEND_LOCAL

    def __init__(self, upload_dir: str = UPLOAD_DIR, base_url: str = API_BASE_URL):
        self.upload_dir = upload_dir
        self.base_url = base_url.rstrip("/")

    async def save(self, key: str, content: bytes, content_type: str) -> str:
        file_path = os.path.join(self.upload_dir, key)
        os.makedirs(os.path.dirname(file_path), exist_ok=True)
        async with aiofiles.open(file_path, 'wb') as out_file:
            await out_file.write(content)
        return f"{self.base_url}/uploads/{key}"


class S3StorageBackend:
    """Stores files in an S3-compatible bucket using aioboto3."""

    name = STORAGE_BACKEND_S3

    def __init__(
        self,
        bucket: str = S3_BUCKET,
        region: str = S3_REGION,
        access_key: str = S3_ACCESS_KEY,
        secret_key: str = S3_SECRET_KEY,
        endpoint_url: Optional[str] = S3_ENDPOINT_URL,
        custom_domain: str = S3_CUSTOM_DOMAIN
    ):
        self.bucket = bucket
        self.region = region
        self.access_key = access_key
        self.secret_key = secret_key
        self.endpoint_url = endpoint_url
        self.custom_domain = custom_domain

    async def save(self, key: str, content: bytes, content_type: str) -> str:
        session = aioboto3.Session()
        async with session.client(  # type: ignore
            's3',
            region_name=self.region,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            endpoint_url=self.endpoint_url
        ) as s3_client:  # type: ignore
            s3 = cast("S3Client", s3_client)
            await s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type or 'application/octet-stream'
            )
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        if self.custom_domain:
            return f"https://{self.custom_domain}/{key}"
        if self.endpoint_url:
            # MinIO / Backblaze / localstack style path addressing
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def get_storage_backend() -> LocalStorageBackend | S3StorageBackend:
    """Object storage when fully configured, local disk otherwise."""
    if S3_BUCKET and S3_ACCESS_KEY and S3_SECRET_KEY:
        return S3StorageBackend()
    return LocalStorageBackend()


async def save_uploaded_file(
    content: bytes,
    booking_id: str,
    payment_index: int,
    filename: str,
    content_type: str,
    backend: Optional[LocalStorageBackend | S3StorageBackend] = None
) -> StoredFile:
    """
    Validate and persist a payment proof.

    Args:
        content: Raw file bytes
        booking_id: Booking the proof belongs to (pre-generated)
        payment_index: Position of the payment within the booking
        filename: Original client filename
        content_type: Client-declared MIME type
        backend: Storage backend (defaults to the configured one)

    Returns:
        StoredFile with the relative path, public URL and backend tag

    Raises:
        FileUploadError: Validation failed
    """
    validate_file(len(content), content_type, filename)
    storage = backend or get_storage_backend()
    key = build_proof_key(booking_id, payment_index, filename, content_type)
    url = await storage.save(key, content, content_type)
    logger.info(f"Stored payment proof for booking {booking_id}: key={key}, size={len(content)}, storage={storage.name}")
    return StoredFile(relative_path=key, url=url, storage=storage.name)
