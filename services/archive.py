"""
Image archiver backed by Cloudinary's upload API.

Uploads the captured data URI and returns the stable HTTPS URL. Any failure
is fatal: an entry is never stored without its image.
"""

import hashlib
import time

import httpx
from loguru import logger

from shared.exceptions import ImageArchiveError
from shared.images import payload_size_bytes

CLOUDINARY_API_URL = "https://api.cloudinary.com/v1_1"


class CloudinaryArchiver:
    """Uploads captured images to durable storage."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        cloud_name: str | None,
        api_key: str | None,
        api_secret: str | None,
        folder: str = "catalog",
        max_size_mb: int = 10,
    ):
        self.client = client
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.max_size_bytes = max_size_mb * 1024 * 1024

    @property
    def configured(self) -> bool:
        return all([self.cloud_name, self.api_key, self.api_secret])

    def sign(self, params: dict[str, str]) -> str:
        """Signature over the sorted upload parameters and the API secret."""
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1((to_sign + self.api_secret).encode("utf-8")).hexdigest()

    async def archive(self, image: str, request_id: str) -> str:
        """
        Upload an image and return its secure URL.

        Args:
            image: Base64 data URI (or remote URL) of the captured image
            request_id: Request identifier for logging

        Returns:
            HTTPS URL of the stored image

        Raises:
            ImageArchiveError: If the image is too large or the upload fails
        """
        if not self.configured:
            raise ImageArchiveError("Image storage not configured")

        size = payload_size_bytes(image)
        if size > self.max_size_bytes:
            raise ImageArchiveError(
                f"Image too large: {size} bytes (max: {self.max_size_bytes} bytes)"
            )

        start_time = time.time()
        params = {"folder": self.folder, "timestamp": str(int(time.time()))}
        form = {
            **params,
            "file": image,
            "api_key": self.api_key,
            "signature": self.sign(params),
        }

        try:
            response = await self.client.post(
                f"{CLOUDINARY_API_URL}/{self.cloud_name}/image/upload", data=form
            )
            response.raise_for_status()
            secure_url = response.json().get("secure_url")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Image upload failed", request_id=request_id, error=str(e))
            raise ImageArchiveError(f"Image upload failed: {e}") from e

        if not secure_url:
            raise ImageArchiveError("Image storage returned no URL")

        logger.info(
            "Image archived",
            request_id=request_id,
            url=secure_url,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        return secure_url

    async def ping(self) -> None:
        """Check credentials against the admin ping endpoint."""
        if not self.configured:
            raise ImageArchiveError("Image storage not configured")
        response = await self.client.get(
            f"{CLOUDINARY_API_URL}/{self.cloud_name}/ping",
            auth=(self.api_key, self.api_secret),
        )
        response.raise_for_status()
