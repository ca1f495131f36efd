"""
Data model shared by both descriptor grammars.

A descriptor decodes into a ResourceIdentity (where the original lives),
TransformParams (what to do with its pixels) and the keys/URIs derived from
them. All of these are frozen; a changed extension produces a new identity.
"""
from dataclasses import dataclass, replace
from typing import Optional

JPEG_EXTENSION = "jpg"

CONTENT_TYPE_JPEG = "image/jpeg"
CONTENT_TYPE_PNG = "image/png"


class DescriptorError(ValueError):
    """Base class for every reason a descriptor cannot be decoded."""


class GrammarMismatch(DescriptorError):
    """Descriptor fails the grammar validator."""


class DimensionExtractionFailure(DescriptorError):
    """No width/height pair could be extracted, or both are zero."""


class MissingParameterToken(DescriptorError):
    """Parameter segment lacks the mandatory width token."""


class MalformedSegmentCount(DescriptorError):
    """Too few path segments to hold the required fields."""


@dataclass(frozen=True)
class TransformParams:
    """Requested operations. A zero side means "derive from aspect ratio"."""
    width: int = 0
    height: int = 0
    crop: bool = False
    grayscale: bool = False
    convert: bool = False


@dataclass(frozen=True)
class ResourceIdentity:
    """Location of an original image, stripped of any transform encoding."""
    prefix: str
    base_name: str
    extension: str
    namespace: Optional[str] = None

    @property
    def filename(self) -> str:
        return f"{self.base_name}.{self.extension}"

    @property
    def resource_path(self) -> str:
        """Prefix and filename, without the namespace."""
        if self.prefix:
            return f"{self.prefix}/{self.filename}"
        return self.filename

    @property
    def is_png(self) -> bool:
        return self.extension.lower() == "png"

    def with_extension(self, extension: str) -> "ResourceIdentity":
        return replace(self, extension=extension)


@dataclass(frozen=True)
class DecodedKey:
    """
    Result of decoding one descriptor.

    size_token is set for suffix keys (e.g. "800x0"), params_token for ref
    keys (e.g. "w_500,h_500"); both are kept verbatim so the destination key
    can be rebuilt exactly as the client wrote it.
    """
    identity: ResourceIdentity
    params: TransformParams
    source_key: str
    fallback_uri: str
    size_token: Optional[str] = None
    params_token: Optional[str] = None
