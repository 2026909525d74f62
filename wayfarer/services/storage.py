import asyncio
import io
import logging
import os
import uuid
from typing import Optional

from ..config import Settings, settings as default_settings
from ..exceptions import CorruptedImageError, ImageTooLargeError, UnsupportedImageFormatError

# Configure logging
logger = logging.getLogger(__name__)


class StorageService:
    """
    Image storage collaborator.

    Accepts an image payload and returns the URL it is served from. The
    backend is chosen by `settings.storage_backend`: "local" writes below
    `settings.media_root`, "s3" uploads with boto3.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    @property
    def media_root(self) -> str:
        return os.path.abspath(self.settings.media_root)

    def _resolved_s3_config(self):
        settings = self.settings
        return {
            "bucket": settings.s3_bucket,
            "region": settings.s3_region or "us-east-1",
            "endpoint": settings.s3_endpoint_url,
            "public_base": settings.s3_public_base_url,
            "use_path_style": settings.s3_use_path_style,
            "access_key_id": settings.s3_access_key_id,
            "secret_access_key": settings.s3_secret_access_key,
        }

    async def save_place_image(self, place_id: int, filename: str, content: bytes) -> str:
        return await self._save("places", place_id, filename, content)

    async def save_review_image(self, review_id: int, filename: str, content: bytes) -> str:
        return await self._save("reviews", review_id, filename, content)

    async def _save(self, folder: str, owner_id: int, filename: str, content: bytes) -> str:
        _validate_image_or_raise(filename, content, self.settings.photo_max_mb)
        # Random names so re-uploads never overwrite a URL already handed out
        stored_name = f"{uuid.uuid4().hex}{os.path.splitext(filename.lower())[1]}"
        key = f"{folder}/{owner_id}/{stored_name}"
        if self.settings.storage_backend == "s3":
            return await self._save_s3(key, filename, content)
        return await self._save_local(key, content)

    async def _save_local(self, key: str, content: bytes) -> str:
        target_path = os.path.join(self.media_root, *key.split("/"))

        def _write():
            os.makedirs(os.path.dirname(target_path), exist_ok=True)
            with open(target_path, "wb") as f:
                f.write(content)

        await asyncio.to_thread(_write)
        logger.info(f"Stored image locally at {target_path}")
        return f"{self.settings.local_base_url.rstrip('/')}/media/{key}"

    async def _save_s3(self, key: str, filename: str, content: bytes) -> str:
        import boto3
        from botocore.config import Config as BotoConfig

        cfg = self._resolved_s3_config()

        if not cfg["bucket"]:
            raise ValueError(
                "S3 bucket is not configured. Set APP_S3_BUCKET.")

        def _upload_to_s3():
            session = boto3.session.Session(
                aws_access_key_id=cfg["access_key_id"],
                aws_secret_access_key=cfg["secret_access_key"],
                region_name=cfg["region"],
            )
            s3 = session.client(
                "s3",
                endpoint_url=cfg["endpoint"],
                config=BotoConfig(
                    s3={"addressing_style": "path" if cfg["use_path_style"] else "auto"}),
            )
            s3.put_object(Bucket=cfg["bucket"], Key=key,
                          Body=content, ContentType=_guess_content_type(filename))

        # Run S3 upload in thread pool to avoid blocking event loop
        await asyncio.to_thread(_upload_to_s3)
        logger.info(f"Uploaded image to s3://{cfg['bucket']}/{key}")
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        cfg = self._resolved_s3_config()
        if cfg["public_base"]:
            return f"{cfg['public_base'].rstrip('/')}/{key}"
        if cfg["use_path_style"] and cfg["endpoint"]:
            return f"{cfg['endpoint'].rstrip('/')}/{cfg['bucket']}/{key}"
        return f"https://{cfg['bucket']}.s3.{cfg['region']}.amazonaws.com/{key}"


def _validate_image_or_raise(filename: str, content: bytes, max_mb: int) -> None:
    # Size cap from settings (photo_max_mb)
    max_bytes = int(max_mb) * 1024 * 1024
    if len(content) > max_bytes:
        raise ImageTooLargeError(max_mb)
    # Content type by extension must be image
    ctype = _guess_content_type(filename)
    if not ctype.startswith("image/"):
        raise UnsupportedImageFormatError()
    # Attempt to open with Pillow to validate image
    try:
        from PIL import Image
        Image.open(io.BytesIO(content)).verify()
    except Exception:
        raise CorruptedImageError()


def _guess_content_type(filename: str) -> str:
    ext = os.path.splitext(filename.lower())[1]
    return {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".gif": "image/gif",
        ".webp": "image/webp",
    }.get(ext, "application/octet-stream")
