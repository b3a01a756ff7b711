# =============================================================================
# Image Upload Proxy (ImgBB)
# =============================================================================
#
# Setup:
#   1. Create an API key at https://api.imgbb.com/
#   2. Set env var: IMGBB_API_KEY=...
#
# The API never stores image bytes itself; it forwards the upload and hands
# back the hosted URL, which clients then put in a product's `image` field.
#
# =============================================================================

import base64
import logging

import httpx

from marketplace.core.errors import MarketplaceError, ValidationError

logger = logging.getLogger(__name__)


class ImageUploadError(MarketplaceError):
    """The image host could not be reached."""
    status_code = 502
    default_detail = "Image upload failed"


class ImgBBClient:
    """Forward images to ImgBB."""

    UPLOAD_URL = "https://api.imgbb.com/1/upload"

    def __init__(self, api_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def upload(self, data: bytes, filename: str | None = None) -> str:
        """
        Upload raw image bytes.

        Returns:
            Public URL of the hosted image

        Raises:
            ValidationError: empty image, or ImgBB refused it
            ImageUploadError: ImgBB unreachable or not configured
        """
        if not data:
            raise ValidationError("No image file provided")
        if not self.is_configured:
            logger.error("IMGBB_API_KEY not set - cannot upload images")
            raise ImageUploadError("Image uploads are not configured")

        form = {"image": base64.b64encode(data).decode("ascii")}
        if filename:
            form["name"] = filename.rsplit(".", 1)[0]

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=30.0) as client:
                response = await client.post(self.UPLOAD_URL, params={"key": self.api_key}, data=form)
        except httpx.RequestError as e:
            logger.error(f"Image upload request failed: {e}")
            raise ImageUploadError() from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200 or not body.get("success"):
            logger.warning(f"ImgBB rejected upload: {response.status_code} {response.text[:200]}")
            raise ValidationError("Failed to upload image")

        return body["data"]["url"]
