from io import BytesIO
from typing import Dict, Optional, Tuple

import pytest
from PIL import Image

from services.resizer.config import Settings
from services.resizer.s3_client import ObjectNotFound, StorageError


@pytest.fixture
def settings() -> Settings:
    return Settings(
        bucket="simplytest",
        region="eu-central-1",
        s3_endpoint="s3-website",
        endpoint_scheme="http",
        redirect_host="cdn.example.com",
    )


def make_image(fmt: str = "JPEG", size: Tuple[int, int] = (400, 200), mode: str = "RGB") -> bytes:
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    image = Image.new(mode, size, color)
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


class FakeStorage:
    """In-memory stand-in for S3Client."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None, fail_uploads: bool = False):
        self.objects = dict(objects or {})
        self.content_types: Dict[str, str] = {}
        self.fail_uploads = fail_uploads

    def get_object(self, key: str) -> bytes:
        if key not in self.objects:
            raise ObjectNotFound(f"Object not found: {key}")
        return self.objects[key]

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        if self.fail_uploads:
            raise StorageError(f"Upload of {key} failed")
        self.objects[key] = body
        self.content_types[key] = content_type
