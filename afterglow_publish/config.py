"""
PublishConfig - Bucket, prefix and CDN settings for a publish target.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .errors import ConfigurationError


DEFAULT_REGION = 'ap-southeast-2'


def extract_bucket_name(value: str) -> str:
    """
    Return the bucket name from an S3 ARN, or the input unchanged.

    'arn:aws:s3:::my-bucket/some/prefix' -> 'my-bucket'
    """
    trimmed = (value or '').strip()
    if trimmed.startswith('arn:'):
        resource = trimmed.split(':', 5)[-1]
        bucket = resource.split('/', 1)[0]
        if bucket:
            return bucket
    return trimmed


def extract_distribution_id(value: str) -> str:
    """
    Return the distribution id from a CloudFront ARN, or the input unchanged.

    'arn:aws:cloudfront::123456:distribution/E1ABC2DEF3GH' -> 'E1ABC2DEF3GH'
    """
    trimmed = (value or '').strip()
    if trimmed.startswith('arn:'):
        last = trimmed.rsplit('/', 1)[-1]
        if last:
            return last
    return trimmed


def normalize_prefix(prefix: Optional[str]) -> str:
    """Strip leading slashes and make a non-empty prefix end with '/'."""
    prefix = (prefix or '').strip().lstrip('/')
    if prefix and not prefix.endswith('/'):
        prefix += '/'
    return prefix


@dataclass
class PublishConfig:
    """
    Configuration for a publish target.

    Attributes:
        bucket: Bucket name or S3 ARN
        region: AWS region of the bucket
        prefix: Remote root prefix everything is published under
        distribution_id: CloudFront distribution id or ARN (empty disables invalidation)
        endpoint: Optional endpoint URL for S3-compatible stores
        verify_ssl: Verify TLS certificates of the endpoint
        access_key: Access key id (falls back to the keychain when empty)
        secret_key: Secret access key (falls back to the keychain when empty)
    """
    bucket: str = ''
    region: str = DEFAULT_REGION
    prefix: str = ''
    distribution_id: str = ''
    endpoint: Optional[str] = None
    verify_ssl: bool = True
    access_key: Optional[str] = None
    secret_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'PublishConfig':
        """Create configuration from environment variables."""
        return cls(
            bucket=os.getenv('AFTERGLOW_BUCKET', ''),
            region=os.getenv('AFTERGLOW_REGION', DEFAULT_REGION),
            prefix=os.getenv('AFTERGLOW_PREFIX', ''),
            distribution_id=os.getenv('AFTERGLOW_DISTRIBUTION_ID', ''),
            endpoint=os.getenv('AFTERGLOW_S3_ENDPOINT') or None,
            verify_ssl=os.getenv('AFTERGLOW_VERIFY_SSL', 'true').lower() not in ('0', 'false', 'no'),
            access_key=os.getenv('AWS_ACCESS_KEY_ID') or None,
            secret_key=os.getenv('AWS_SECRET_ACCESS_KEY') or None,
        )

    @classmethod
    def from_settings_file(cls, filepath: str) -> 'PublishConfig':
        """
        Load the manager's settings.json.

        The file uses camelCase keys: bucket, region, s3Prefix,
        cloudFrontDistributionId. Credentials are never stored there.
        """
        path = Path(filepath)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {path} must contain a JSON object")

        return cls(
            bucket=data.get('bucket', ''),
            region=data.get('region') or DEFAULT_REGION,
            prefix=data.get('s3Prefix', ''),
            distribution_id=data.get('cloudFrontDistributionId', ''),
        )

    @property
    def bucket_name(self) -> str:
        """Bucket name with any ARN wrapping removed."""
        return extract_bucket_name(self.bucket)

    @property
    def distribution(self) -> str:
        """Distribution id with any ARN wrapping removed."""
        return extract_distribution_id(self.distribution_id)

    @property
    def root_prefix(self) -> str:
        """Normalized remote root prefix ('' or ending in '/')."""
        return normalize_prefix(self.prefix)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if not self.bucket_name:
            errors.append("Bucket is required (set AFTERGLOW_BUCKET or --bucket)")
        if not self.region and not self.endpoint:
            errors.append("Region is required (set AFTERGLOW_REGION or --region)")
        return errors

    def require_valid(self) -> None:
        """Raise ConfigurationError if validate() reports any problem."""
        errors = self.validate()
        if errors:
            raise ConfigurationError('; '.join(errors))
