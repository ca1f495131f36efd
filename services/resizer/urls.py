"""
Redirect URI construction.

Suffix keys redirect into the S3 website endpoint:
  {scheme}://{bucket}.{s3_endpoint}.{region}.amazonaws.com/{key}

Ref keys redirect to a single configured host:
  https://{redirect_host}/{key}
"""
from urllib.parse import urlsplit

from services.resizer.config import Settings


def s3_website_uri(key: str, settings: Settings) -> str:
    return (
        f"{settings.endpoint_scheme}://{settings.bucket}.{settings.s3_endpoint}."
        f"{settings.region}.amazonaws.com/{key}"
    )


def redirect_host_uri(key: str, settings: Settings) -> str:
    return f"https://{settings.redirect_host}/{key}"


def key_from_uri(uri: str) -> str:
    """Strip scheme and host from a redirect URI, returning the storage key."""
    return urlsplit(uri).path.lstrip("/")
