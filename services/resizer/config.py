"""
Process-wide configuration, read once from environment variables.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

REQUIRED_ENV_VARS = (
    "AWS_BUCKET",
    "AWS_REGION",
    "AWS_S3_ENDPOINT",
    "AWS_ENDPOINT_SCHEME",
    "REDIRECT_HOST",
)

DEFAULT_PORT = 4321
DEFAULT_JPEG_QUALITY = 90


@dataclass(frozen=True)
class Settings:
    """Immutable settings shared read-only by all requests."""
    bucket: str
    region: str
    s3_endpoint: str
    endpoint_scheme: str
    redirect_host: str
    endpoint_url: Optional[str] = None
    port: int = DEFAULT_PORT
    jpeg_quality: int = DEFAULT_JPEG_QUALITY

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.
        Raises ValueError listing every required variable that is missing or empty.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_ENV_VARS if not env.get(name)]
        if missing:
            raise ValueError(f"Missing environment variables: {', '.join(missing)}")

        return cls(
            bucket=env["AWS_BUCKET"],
            region=env["AWS_REGION"],
            s3_endpoint=env["AWS_S3_ENDPOINT"],
            endpoint_scheme=env["AWS_ENDPOINT_SCHEME"],
            redirect_host=env["REDIRECT_HOST"],
            endpoint_url=env.get("AWS_ENDPOINT_URL") or None,
            port=int(env.get("PORT") or DEFAULT_PORT),
            jpeg_quality=int(env.get("JPEG_QUALITY") or DEFAULT_JPEG_QUALITY),
        )
