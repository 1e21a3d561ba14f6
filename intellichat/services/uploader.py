"""Asset uploader: durable hosting for generated images."""
import base64
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from intellichat.config import Settings
from intellichat.errors import UploadFailed
from intellichat.logging import get_logger


logger = get_logger(__name__)

IMAGEKIT_UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"


class AssetUploader(ABC):
    """Abstract base class for image hosting."""

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        file_name: str,
        folder: str,
        content_type: str = "image/png",
    ) -> str:
        """Store the file and return its public URL."""
        pass


class ImageKitUploader(AssetUploader):
    """Uploads files through the ImageKit upload API."""

    def __init__(
        self,
        private_key: str,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.private_key = private_key
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def upload(
        self,
        data: bytes,
        file_name: str,
        folder: str,
        content_type: str = "image/png",
    ) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        try:
            response = await self._http.post(
                IMAGEKIT_UPLOAD_URL,
                auth=(self.private_key, ""),
                data={
                    "file": f"data:{content_type};base64,{encoded}",
                    "fileName": file_name,
                    "folder": folder,
                },
            )
            response.raise_for_status()
            url = response.json().get("url")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("image_upload_failed", file_name=file_name, error=str(e))
            raise UploadFailed(f"Image upload failed: {e}") from e

        if not url:
            raise UploadFailed("Image upload returned no URL")
        return url


def create_uploader(settings: Settings) -> AssetUploader:
    return ImageKitUploader(
        private_key=settings.imagekit_private_key,
        timeout=settings.gateway_timeout_seconds,
    )
