"""
Image upload route - proxies multipart uploads to ImgBB.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from marketplace.api.dependencies import get_image_client
from marketplace.core.errors import ValidationError
from marketplace.integrations.images import ImgBBClient

router = APIRouter(prefix="/api/images", tags=["images"])


class UploadResponse(BaseModel):
    success: bool = True
    url: str


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    image: UploadFile | None = File(default=None),
    images: ImgBBClient = Depends(get_image_client),
):
    """Upload an image and get back its hosted URL."""
    if image is None:
        raise ValidationError("No image file provided")
    if image.content_type and not image.content_type.startswith("image/"):
        raise ValidationError("File must be an image")

    url = await images.upload(await image.read(), filename=image.filename)
    return UploadResponse(url=url)
