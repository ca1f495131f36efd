"""
S3 client for original and derived images using boto3.
"""
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from services.resizer.config import Settings

NOT_FOUND_CODES = ("NoSuchKey", "404", "NotFound")


class StorageError(Exception):
    """Transport or service failure while talking to S3."""


class ObjectNotFound(StorageError):
    """Requested key does not exist in the bucket."""


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class S3Client:
    """Wrapper around boto3 S3 client bound to the configured bucket."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        """Use the default boto3 credential chain unless a client is injected."""
        self.bucket = settings.bucket

        self.client = client or boto3.client(
            "s3",
            region_name=settings.region,
            endpoint_url=settings.endpoint_url,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"}
            )
        )

    def get_object(self, key: str) -> bytes:
        """
        Download object and return bytes.
        Raises ObjectNotFound if the key doesn't exist, StorageError on any other failure.
        """
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            code = _error_code(e)
            if code in NOT_FOUND_CODES:
                raise ObjectNotFound(f"Object not found: s3://{self.bucket}/{key}") from e
            raise StorageError(f"Download of {key} failed: {code or e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Download of {key} failed: {e}") from e

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        """Upload bytes at specified key. Raises StorageError on failure."""
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e
