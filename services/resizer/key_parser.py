"""
Suffix key parsing utilities.

Parses descriptors that carry the requested size in the filename:
  crazy/images/blue_marble-500x500.jpg
  images/theshot-800x.jpeg            (height follows aspect ratio)
  images/gopher-800x0-jpg.png         (PNG original, JPEG output)

Builds the source key of the original:
  crazy/images/blue_marble.jpg
  images/gopher.png

and the destination key of the resized copy:
  crazy/images/blue_marble-500x500.jpg
  images/gopher-800x0.jpg
"""
import string
from typing import Optional, Tuple

from services.resizer.config import Settings
from services.resizer.models import (
    CONTENT_TYPE_JPEG,
    CONTENT_TYPE_PNG,
    JPEG_EXTENSION,
    DecodedKey,
    DimensionExtractionFailure,
    GrammarMismatch,
    ResourceIdentity,
    TransformParams,
)
from services.resizer.urls import s3_website_uri

NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_-")
DIGITS = frozenset(string.digits)

EXTENSIONS = ("jpg", "jpeg", "JPG", "JPEG", "png", "PNG")
PNG_EXTENSIONS = ("png", "PNG")
CONVERT_TAGS = ("-jpeg", "-JPEG", "-jpg", "-JPG")

MIN_BASE_NAME_LENGTH = 3
# longest size side the decoder converts; output is capped at 10000px later
MAX_SIDE_DIGITS = 5


def _is_name(value: str) -> bool:
    return bool(value) and all(c in NAME_CHARS for c in value)


def _is_size_side(value: str) -> bool:
    return all(c in DIGITS for c in value)


def _is_nonzero(value: str) -> bool:
    return bool(value.lstrip("0"))


def _parse_side(value: str) -> int:
    if len(value.lstrip("0")) > MAX_SIDE_DIGITS:
        raise ValueError(f"Size side {value[:10]}... is too large")
    return int(value) if value else 0


def _split_extension(filename: str) -> Tuple[str, str]:
    """Split at the last dot. Extension is empty when there is no dot."""
    stem, dot, extension = filename.rpartition(".")
    if not dot:
        return filename, ""
    return stem, extension


def _strip_convert_tag(stem: str) -> Tuple[str, bool]:
    """Remove a trailing convert tag by exact suffix match."""
    for tag in CONVERT_TAGS:
        if stem.endswith(tag):
            return stem[:-len(tag)], True
    return stem, False


def validate_key(key: str) -> bool:
    """
    Check a descriptor against the suffix key grammar:
      (<segment>/)*<base>-<width>x<height>[-jpg|-jpeg|-JPG|-JPEG].<ext>
    Never raises; any mismatch returns False.
    """
    if not isinstance(key, str) or not key:
        return False

    *segments, filename = key.split("/")
    if not all(_is_name(segment) for segment in segments):
        return False

    stem, extension = _split_extension(filename)
    if extension not in EXTENSIONS or not _is_name(stem):
        return False

    stem, _ = _strip_convert_tag(stem)
    base_name, dash, size_token = stem.rpartition("-")
    if not dash or len(base_name) < MIN_BASE_NAME_LENGTH:
        return False

    raw_width, x, raw_height = size_token.partition("x")
    if not x or not _is_size_side(raw_width) or not _is_size_side(raw_height):
        return False

    return _is_nonzero(raw_width) or _is_nonzero(raw_height)


def detect_convert_request(filename: str) -> bool:
    """A PNG filename ending in a convert tag asks for JPEG output."""
    stem, extension = _split_extension(filename)
    if extension not in PNG_EXTENSIONS:
        return False
    return _strip_convert_tag(stem)[1]


def extract_dimensions(stem: str) -> Tuple[str, str, int, int]:
    """
    Split 'blue_marble-500x0' into (base_name, size_token, width, height).
    Raises DimensionExtractionFailure when no size suffix is found or both sides are zero.
    """
    base_name, _, size_token = stem.rpartition("-")
    if "x" not in size_token:
        raise DimensionExtractionFailure(f"Couldn't extract width and height from {stem!r}")

    raw_width, _, raw_height = size_token.partition("x")
    try:
        width = _parse_side(raw_width)
        height = _parse_side(raw_height)
    except ValueError as e:
        raise DimensionExtractionFailure(f"Invalid size {size_token!r}") from e

    if width == 0 and height == 0:
        raise DimensionExtractionFailure("Providing 0 for width and height isn't allowed")
    if not base_name:
        raise DimensionExtractionFailure(f"No base name in {stem!r}")

    return base_name, size_token, width, height


def parse_key(key: str, settings: Settings) -> DecodedKey:
    """
    Decode a suffix key into identity, transform params, source key and
    fallback URI. Raises a DescriptorError subclass on any failure.
    """
    if not validate_key(key):
        raise GrammarMismatch(f"Malformed key: {key!r}")

    segments = key.split("/")
    filename = segments[-1]
    prefix = "/".join(segments[:-1])

    convert = detect_convert_request(filename)

    stem, extension = _split_extension(filename)
    stem, _ = _strip_convert_tag(stem)
    base_name, size_token, width, height = extract_dimensions(stem)

    identity = ResourceIdentity(prefix=prefix, base_name=base_name, extension=extension)
    source_key = build_source_key(identity)

    return DecodedKey(
        identity=identity,
        params=TransformParams(width=width, height=height, convert=convert),
        source_key=source_key,
        fallback_uri=s3_website_uri(source_key, settings),
        size_token=size_token,
    )


def build_source_key(identity: ResourceIdentity) -> str:
    """Key of the original: prefix and filename with every transform marker stripped."""
    return identity.resource_path


def split_source_key(key: str) -> ResourceIdentity:
    """Inverse of build_source_key."""
    prefix, _, filename = key.rpartition("/")
    base_name, extension = _split_extension(filename)
    if not base_name or extension not in EXTENSIONS:
        raise GrammarMismatch(f"Not a source key: {key!r}")
    return ResourceIdentity(prefix=prefix, base_name=base_name, extension=extension)


def build_destination_key(decoded: DecodedKey) -> str:
    """
    Key of the resized copy. Keeps the size token as written and drops the
    convert tag, so it matches the key the bucket serves on the next request.
    """
    identity = decoded.identity
    if decoded.params.convert:
        identity = identity.with_extension(JPEG_EXTENSION)

    filename = f"{identity.base_name}-{decoded.size_token}.{identity.extension}"
    if identity.prefix:
        return f"{identity.prefix}/{filename}"
    return filename


def detect_content_type(decoded: DecodedKey) -> str:
    if not decoded.params.convert and decoded.identity.is_png:
        return CONTENT_TYPE_PNG
    return CONTENT_TYPE_JPEG


def recover_key(key: str) -> Optional[str]:
    """
    Best-effort source key for a descriptor that failed to decode, used to
    build the fallback redirect. Returns None when nothing usable is left.
    """
    if not isinstance(key, str) or not key:
        return None

    *segments, filename = key.split("/")
    if not all(_is_name(segment) for segment in segments):
        return None

    stem, extension = _split_extension(filename)
    if extension not in EXTENSIONS:
        return None

    stem, _ = _strip_convert_tag(stem)
    base_name, dash, size_token = stem.rpartition("-")
    if dash and base_name and "x" in size_token:
        stem = base_name
    if not _is_name(stem):
        return None

    return "/".join(segments + [f"{stem}.{extension}"])
