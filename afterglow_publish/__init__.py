"""
Afterglow gallery publisher

Publishes a local gallery workspace to S3 and CloudFront in two calls:
    1. Preview: build thumbnails, stage rewritten metadata, diff against the bucket
    2. Execute: upload, delete orphans, invalidate the CDN

Only files that changed are transferred; unchanged objects are detected by
comparing local MD5 digests with remote ETags.
"""

__version__ = "0.1.0"

from .config import PublishConfig
from .errors import (
    ConfigurationError,
    CredentialsError,
    InvalidationError,
    InvalidationTimeoutError,
    PlanBusyError,
    PlanNotFoundError,
    PublishError,
    RemoteError,
    ThumbnailError,
    WorkspaceError,
)
from .gallery import Gallery, GalleryDetails, GalleryIndex, Photo
from .collector import collect_referenced_files
from .thumbnail_generator import ThumbnailGenerator
from .thumbnail_stats import ThumbnailResults
from .thumbnail_cache import ThumbnailPipeline, ThumbnailSpec
from .metadata_rewriter import MetadataRewriter
from .sync_file import SyncFile
from .s3_client import S3Client
from .cdn_client import CdnClient
from .planner import PlanBuilder, PublishPlan
from .publish_state import PublishState
from .events import EventChannel, PublishErrorEvent, PublishProgress, PublishResult, ThumbnailProgress
from .executor import ExecutorState, PublishExecutor
from .publisher import Publisher
from .reporter import Reporter
from .progress import ProgressPrinter

__all__ = [
    "PublishConfig",
    "PublishError",
    "ConfigurationError",
    "CredentialsError",
    "WorkspaceError",
    "ThumbnailError",
    "RemoteError",
    "InvalidationError",
    "InvalidationTimeoutError",
    "PlanNotFoundError",
    "PlanBusyError",
    "Gallery",
    "GalleryDetails",
    "GalleryIndex",
    "Photo",
    "collect_referenced_files",
    "ThumbnailGenerator",
    "ThumbnailResults",
    "ThumbnailPipeline",
    "ThumbnailSpec",
    "MetadataRewriter",
    "SyncFile",
    "S3Client",
    "CdnClient",
    "PlanBuilder",
    "PublishPlan",
    "PublishState",
    "EventChannel",
    "PublishProgress",
    "PublishErrorEvent",
    "PublishResult",
    "ThumbnailProgress",
    "ExecutorState",
    "PublishExecutor",
    "Publisher",
    "Reporter",
    "ProgressPrinter",
]
