"""
Pillow pixel pipeline: resize, centre crop, grayscale and re-encode.
"""
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from services.resizer.models import CONTENT_TYPE_JPEG, CONTENT_TYPE_PNG, TransformParams

logger = logging.getLogger(__name__)

FORMAT_JPEG = "JPEG"
FORMAT_PNG = "PNG"

CONTENT_TYPES = {
    FORMAT_JPEG: CONTENT_TYPE_JPEG,
    FORMAT_PNG: CONTENT_TYPE_PNG,
}

BACKGROUND_COLOR = (255, 255, 255)
MAX_OUTPUT_SIDE = 10000


class TransformError(Exception):
    """Image could not be decoded, transformed or encoded."""


@dataclass(frozen=True)
class TransformResult:
    body: bytes
    format: str
    source_format: str

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES[self.format]


def format_for_extension(extension: str) -> str:
    return FORMAT_PNG if extension.lower() == "png" else FORMAT_JPEG


def target_size(size: Tuple[int, int], width: int, height: int) -> Tuple[int, int]:
    """Fill in a zero side from the source aspect ratio."""
    src_width, src_height = size
    if width and height:
        return width, height
    if width:
        return width, max(1, round(src_height * width / src_width))
    return max(1, round(src_width * height / src_height)), height


def resize(image: Image.Image, width: int, height: int) -> Image.Image:
    return image.resize(target_size(image.size, width, height), Image.Resampling.LANCZOS)


def crop(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale to cover width x height, then cut the centre."""
    return ImageOps.fit(image, (width, height), method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))


def grayscale(image: Image.Image) -> Image.Image:
    if "A" in image.getbands():
        return image.convert("LA")
    return ImageOps.grayscale(image)


def flatten(image: Image.Image) -> Image.Image:
    """Composite transparency onto white so the image can be written as JPEG."""
    if image.mode in ("RGB", "L"):
        return image
    if image.mode == "LA":
        background = Image.new("L", image.size, BACKGROUND_COLOR[0])
        background.paste(image.getchannel("L"), mask=image.getchannel("A"))
        return background
    if "A" in image.getbands():
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, BACKGROUND_COLOR)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def transform_image(
    data: bytes,
    params: TransformParams,
    target_format: Optional[str] = None,
    jpeg_quality: int = 90,
) -> TransformResult:
    """
    Apply the requested operations and encode the result.

    Args:
        data: Encoded original image
        params: Requested size, crop and grayscale
        target_format: "JPEG" or "PNG"; None publishes JPEG whatever the source was
        jpeg_quality: Encoder quality for JPEG output

    Returns:
        TransformResult with the encoded body and the effective output format
    """
    if max(params.width, params.height) > MAX_OUTPUT_SIDE:
        raise TransformError(f"Requested size {params.width}x{params.height} exceeds {MAX_OUTPUT_SIDE}px")

    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise TransformError(f"Cannot decode image: {e}") from e

    source_format = image.format or FORMAT_JPEG
    output_format = target_format or FORMAT_JPEG
    if output_format not in CONTENT_TYPES:
        raise TransformError(f"Unsupported output format: {output_format}")

    if source_format == FORMAT_PNG and output_format == FORMAT_JPEG:
        logger.debug("Converting PNG original to JPEG")

    if image.mode == "P":
        image = image.convert("RGBA")

    if params.crop and params.width and params.height:
        image = crop(image, params.width, params.height)
    else:
        image = resize(image, params.width, params.height)

    if params.grayscale:
        image = grayscale(image)

    buffer = BytesIO()
    try:
        if output_format == FORMAT_JPEG:
            flatten(image).save(buffer, format=FORMAT_JPEG, quality=jpeg_quality)
        else:
            image.save(buffer, format=FORMAT_PNG, optimize=True)
    except (OSError, ValueError) as e:
        raise TransformError(f"Cannot encode {output_format}: {e}") from e

    return TransformResult(body=buffer.getvalue(), format=output_format, source_format=source_format)
