"""
S3Client - Object store operations for listing, uploading and deleting gallery files.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import PublishConfig
from .errors import RemoteError, WorkspaceError


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        info = error.response.get('Error', {})
        code = info.get('Code', 'Unknown')
        return f"{code}: {info.get('Message', str(error))}"
    return str(error)


class S3Client:
    """
    Wrapper for S3 operations used by a publish.

    Every boto3 failure is re-raised as RemoteError carrying the key involved.
    Calls are never retried.
    """

    def __init__(
        self,
        config: PublishConfig,
        credentials: Tuple[str, str],
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize S3 client.

        Args:
            config: Publish configuration
            credentials: (access key id, secret access key)
            logger: Optional logger instance
        """
        self.config = config
        self.bucket = config.bucket_name
        self.logger = logger or logging.getLogger(__name__)

        access_key, secret_key = credentials
        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=config.region or None,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path' if config.endpoint else 'auto'},
                retries={'max_attempts': 1, 'mode': 'standard'},
            ),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def list_fingerprints(self, prefix: str) -> Dict[str, str]:
        """
        List every object under a prefix.

        Args:
            prefix: Key prefix ('' lists the whole bucket)

        Returns:
            Dict mapping key -> ETag with surrounding quotes removed
        """
        paginator = self._client.get_paginator('list_objects_v2')
        page_iterator = paginator.paginate(
            Bucket=self.bucket,
            Prefix=prefix,
        )

        objects = {}
        count = 0
        try:
            for page in page_iterator:
                for obj in page.get('Contents', []):
                    key = obj.get('Key', '')
                    if not key:
                        continue
                    objects[key] = obj.get('ETag', '').strip('"')
                    count += 1
                    if count % 1000 == 0:
                        self.logger.info(f"  Listed {count:,} remote objects...")
        except (ClientError, BotoCoreError) as e:
            raise RemoteError(
                f"Listing s3://{self.bucket}/{prefix} failed: {_error_message(e)}", key=prefix
            ) from e

        self.logger.info(f"Remote: {len(objects):,} objects under s3://{self.bucket}/{prefix}")
        return objects

    def upload_file(self, key: str, path: Path, content_type: str) -> None:
        """
        Stream a local file to a key.

        Raises:
            WorkspaceError: if the local file cannot be opened
            RemoteError: if the upload fails
        """
        try:
            body = open(path, 'rb')
        except OSError as e:
            raise WorkspaceError(f"Failed to read {path}: {e}") from e

        with body:
            try:
                self._client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    ContentType=content_type
                )
            except (ClientError, BotoCoreError) as e:
                raise RemoteError(f"Upload failed for {key}: {_error_message(e)}", key=key) from e

    def delete_object(self, key: str) -> None:
        """
        Delete a single object.

        Raises:
            RemoteError: if the delete fails
        """
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise RemoteError(f"Delete failed for {key}: {_error_message(e)}", key=key) from e
