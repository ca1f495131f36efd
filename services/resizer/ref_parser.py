"""
Ref key parsing utilities.

Parses descriptors that carry a client namespace and a comma separated
parameter segment:
  simplytest/w_500,h_500/blue_marble.jpg
  simplytest/c984c70e/c_fit,w_300,h_200,e_grayscale/albums/2021/cover.png

Builds the source key by dropping the parameter segment:
  simplytest/blue_marble.jpg

and the destination key by moving it behind the namespace:
  simplytest/w_500,h_500/blue_marble.jpg
  simplytest/c984c70e/c_fit,w_300,h_200,e_grayscale/albums/2021/cover.jpg
"""
import string
from typing import List, Optional, Tuple

from services.resizer.config import Settings
from services.resizer.models import (
    JPEG_EXTENSION,
    DecodedKey,
    DimensionExtractionFailure,
    GrammarMismatch,
    MalformedSegmentCount,
    MissingParameterToken,
    ResourceIdentity,
    TransformParams,
)
from services.resizer.urls import redirect_host_uri

NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_+-")
DIGITS = frozenset(string.digits)

EXTENSIONS = ("jpeg", "JPEG", "jpg", "JPG", "png", "PNG")
JPEG_EXTENSIONS = ("jpg", "jpeg")

CROP_TOKEN = "c_fit"
GRAYSCALE_TOKEN = "e_grayscale"
WIDTH_PREFIX = "w_"
HEIGHT_PREFIX = "h_"

MIN_PARAM_TOKENS = 2
MAX_PARAM_TOKENS = 4
MAX_SIDE_DIGITS = 4

# namespace, params, filename
MIN_SEGMENTS = 3


def _is_name(value: str) -> bool:
    return bool(value) and all(c in NAME_CHARS for c in value)


def _is_param_token(token: str) -> bool:
    if token in (CROP_TOKEN, GRAYSCALE_TOKEN):
        return True
    if token.startswith((WIDTH_PREFIX, HEIGHT_PREFIX)):
        digits = token[2:]
        return 1 <= len(digits) <= MAX_SIDE_DIGITS and all(c in DIGITS for c in digits)
    return False


def _looks_like_params(segment: str) -> bool:
    """Parameter list shape without the token count and digit limits."""
    for token in segment.split(","):
        if token in (CROP_TOKEN, GRAYSCALE_TOKEN):
            continue
        if not token.startswith((WIDTH_PREFIX, HEIGHT_PREFIX)):
            return False
        if not all(c in DIGITS for c in token[2:]):
            return False
    return True


def _is_filename(value: str) -> bool:
    name, dot, extension = value.rpartition(".")
    return bool(dot) and extension in EXTENSIONS and _is_name(name)


def is_params_segment(segment: str) -> bool:
    """2-4 tokens from c_fit, e_grayscale, w_<n>, h_<n>."""
    tokens = segment.split(",")
    if not MIN_PARAM_TOKENS <= len(tokens) <= MAX_PARAM_TOKENS:
        return False
    return all(_is_param_token(token) for token in tokens)


def find_params_index(segments: List[str]) -> int:
    """
    Index of the parameter segment: the first well-formed parameter list
    after the leading namespace segment and before the filename.
    Returns -1 when there is none.
    """
    for idx in range(1, len(segments) - 1):
        if is_params_segment(segments[idx]):
            return idx
    return -1


def _sides(segment: str) -> Tuple[int, int]:
    width = height = 0
    for token in segment.split(","):
        if token.startswith(WIDTH_PREFIX):
            width = int(token[2:])
        elif token.startswith(HEIGHT_PREFIX):
            height = int(token[2:])
    return width, height


def validate_ref(ref: str) -> bool:
    """
    Check a descriptor against the ref key grammar:
      <namespace>/<params>[/<segment>...]/<name>.<ext>
    Never raises; any mismatch returns False.
    """
    if not isinstance(ref, str) or not ref:
        return False

    segments = ref.split("/")
    if len(segments) < MIN_SEGMENTS:
        return False

    idx = find_params_index(segments)
    if idx == -1:
        return False

    for i, segment in enumerate(segments[:-1]):
        if i != idx and not _is_name(segment):
            return False
    if not _is_filename(segments[-1]):
        return False

    width, height = _sides(segments[idx])
    return width > 0 or height > 0


def parse_params(segment: str) -> TransformParams:
    """
    Parse 'c_fit,w_500,h_300,e_grayscale'. A width token is mandatory even
    though a height alone would be enough to resize.
    """
    tokens = segment.split(",")
    if not any(token.startswith(WIDTH_PREFIX) for token in tokens):
        raise MissingParameterToken(f"No width token in {segment!r}")

    crop = CROP_TOKEN in tokens
    grayscale = GRAYSCALE_TOKEN in tokens
    try:
        width, height = _sides(segment)
    except ValueError as e:
        raise DimensionExtractionFailure(f"Invalid size in {segment!r}") from e

    if width == 0 and height == 0:
        raise DimensionExtractionFailure("Providing 0 for width and height isn't allowed")

    return TransformParams(width=width, height=height, crop=crop, grayscale=grayscale)


def parse_ref(ref: str, settings: Settings) -> DecodedKey:
    """
    Decode a ref key into identity, transform params, source key and
    fallback URI. Raises a DescriptorError subclass on any failure.
    """
    if not validate_ref(ref):
        if not isinstance(ref, str) or len(ref.split("/")) < MIN_SEGMENTS:
            raise MalformedSegmentCount(f"Too few segments: {ref!r}")
        raise GrammarMismatch(f"Malformed ref: {ref!r}")

    segments = ref.split("/")
    idx = find_params_index(segments)
    params_token = segments[idx]
    params = parse_params(params_token)

    name, _, extension = segments[-1].rpartition(".")
    identity = ResourceIdentity(
        namespace="/".join(segments[:idx]),
        prefix="/".join(segments[idx + 1:-1]),
        base_name=name,
        extension=extension,
    )
    source_key = build_ref_source_key(identity)

    return DecodedKey(
        identity=identity,
        params=params,
        source_key=source_key,
        fallback_uri=redirect_host_uri(source_key, settings),
        params_token=params_token,
    )


def build_ref_source_key(identity: ResourceIdentity) -> str:
    """Every segment except the parameter segment."""
    return f"{identity.namespace}/{identity.resource_path}"


def split_ref_source_key(key: str, namespace_depth: int = 1) -> ResourceIdentity:
    """Inverse of build_ref_source_key for a namespace of namespace_depth segments."""
    segments = key.split("/")
    if namespace_depth < 1 or len(segments) <= namespace_depth:
        raise MalformedSegmentCount(f"Too few segments: {key!r}")
    if not _is_filename(segments[-1]):
        raise GrammarMismatch(f"Not a source key: {key!r}")

    name, _, extension = segments[-1].rpartition(".")
    return ResourceIdentity(
        namespace="/".join(segments[:namespace_depth]),
        prefix="/".join(segments[namespace_depth:-1]),
        base_name=name,
        extension=extension,
    )


def build_ref_destination_key(decoded: DecodedKey, output_format: str) -> str:
    """
    Key of the transformed copy. The output format is only known after the
    pixel pipeline ran; JPEG output of a PNG original gets a .jpg name.
    """
    identity = decoded.identity
    if output_format == "JPEG" and identity.extension.lower() not in JPEG_EXTENSIONS:
        identity = identity.with_extension(JPEG_EXTENSION)
    return f"{identity.namespace}/{decoded.params_token}/{identity.resource_path}"


def recover_ref_key(ref: str) -> Optional[str]:
    """
    Best-effort source key for a ref that failed to decode: drop the first
    segment after the namespace shaped like a parameter list, whatever its
    values. Returns None when nothing usable is left.
    """
    if not isinstance(ref, str) or not ref:
        return None

    segments = ref.split("/")
    if len(segments) < 2:
        return None

    kept = list(segments)
    for idx in range(1, len(segments) - 1):
        if _looks_like_params(segments[idx]):
            del kept[idx]
            break
    if not all(_is_name(segment) for segment in kept[:-1]) or not _is_filename(kept[-1]):
        return None

    return "/".join(kept)
