"""
Exceptions raised by the publish pipeline.
"""

from typing import Optional


class PublishError(Exception):
    """Base class for all publish failures."""


class ConfigurationError(PublishError):
    """Missing or invalid bucket/region/prefix configuration."""


class CredentialsError(ConfigurationError):
    """Credentials are missing or empty. Raised before any network call."""


class WorkspaceError(PublishError):
    """Local metadata could not be read or a staged file could not be written."""


class ThumbnailError(PublishError):
    """A single thumbnail could not be generated. Never fatal to a batch."""


class RemoteError(PublishError):
    """
    An object-store or CDN call failed.

    Attributes:
        key: Remote key the failing call was operating on, if any
    """

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class InvalidationError(RemoteError):
    """The CDN rejected the invalidation request."""


class InvalidationTimeoutError(RemoteError):
    """The CDN invalidation request did not finish within its time bound."""

    def __init__(self, timeout: float):
        super().__init__(f"CloudFront invalidation timed out after {timeout:.0f}s.")
        self.timeout = timeout


class PlanNotFoundError(PublishError):
    """No plan is registered under the requested id."""

    def __init__(self, plan_id: str):
        super().__init__(f"Plan not found: {plan_id}. Run preview first.")
        self.plan_id = plan_id


class PlanBusyError(PublishError):
    """An execute call is already running for this plan."""

    def __init__(self, plan_id: str):
        super().__init__(f"Plan {plan_id} is already being executed")
        self.plan_id = plan_id
