"""
CdnClient - CloudFront cache invalidation after a publish.
"""

import logging
import uuid
from typing import Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import PublishConfig
from .errors import InvalidationError


INVALIDATION_TIMEOUT_SECONDS = 30.0

# CloudFront is a global service addressed through us-east-1
CLOUDFRONT_REGION = 'us-east-1'


def invalidation_path(prefix: str) -> str:
    """Wildcard path covering everything under a remote root prefix."""
    return f"/{prefix}*"


class CdnClient:
    """
    Wrapper for CloudFront invalidation requests.
    """

    def __init__(
        self,
        config: PublishConfig,
        credentials: Tuple[str, str],
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize CloudFront client.

        Args:
            config: Publish configuration (provides the distribution id)
            credentials: (access key id, secret access key)
            logger: Optional logger instance
        """
        self.distribution_id = config.distribution
        self.logger = logger or logging.getLogger(__name__)

        access_key, secret_key = credentials
        timeout = int(INVALIDATION_TIMEOUT_SECONDS)
        self._client = boto3.client(
            'cloudfront',
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=CLOUDFRONT_REGION,
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={'max_attempts': 1, 'mode': 'standard'},
            ),
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    @property
    def enabled(self) -> bool:
        """True when a distribution id is configured."""
        return bool(self.distribution_id)

    def invalidate(self, prefix: str) -> str:
        """
        Invalidate every cached path under a prefix.

        Returns:
            The invalidation id reported by CloudFront

        Raises:
            InvalidationError: if CloudFront rejects the request
        """
        path = invalidation_path(prefix)
        try:
            response = self._client.create_invalidation(
                DistributionId=self.distribution_id,
                InvalidationBatch={
                    'Paths': {'Quantity': 1, 'Items': [path]},
                    'CallerReference': str(uuid.uuid4()),
                },
            )
        except (ClientError, BotoCoreError) as e:
            raise InvalidationError(f"CloudFront invalidation failed: {e}") from e

        invalidation_id = response.get('Invalidation', {}).get('Id', '')
        self.logger.info(f"CloudFront invalidation {invalidation_id} created for path: {path}")
        return invalidation_id
