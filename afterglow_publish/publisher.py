"""
Publisher - preview / execute / cancel entry points for publishing a workspace.

A preview builds thumbnails, stages rewritten metadata and site assets, diffs
everything against the bucket and registers the resulting plan. An execute
applies a registered plan. The two calls share nothing but the PublishState.
"""

import asyncio
import logging
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .cdn_client import CdnClient
from .collector import collect_referenced_files, remote_key_for
from .config import PublishConfig
from .credentials import get_credentials
from .events import EventChannel, PublishResult, ThumbnailProgress
from .executor import ExecutorState, PublishExecutor
from .gallery import GalleryIndex
from .metadata_rewriter import MetadataRewriter
from .planner import PlanBuilder, PublishPlan
from .publish_state import PublishState
from .s3_client import S3Client
from .site_assets import stage_site_assets
from .thumbnail_cache import ThumbnailPipeline, ThumbnailSpec, cache_root_for
from .thumbnail_stats import ThumbnailResults


STAGING_PREFIX = 'afterglow-publish-'


class Publisher:
    """
    Publishes a gallery workspace to a bucket.

    Thumbnail work runs on a dedicated single worker thread so it cannot hold
    up network calls, which run in the loop's default executor.
    """

    def __init__(
        self,
        config: PublishConfig,
        publish_state: Optional[PublishState] = None,
        events: Optional[EventChannel] = None,
        s3_client: Optional[S3Client] = None,
        cdn_client: Optional[CdnClient] = None,
        pipeline: Optional[ThumbnailPipeline] = None,
        include_site_assets: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize publisher.

        Args:
            config: Publish target configuration
            publish_state: Plan registry shared by preview and execute
            events: Channel for progress, error and result events
            s3_client: Object store client (built from config and credentials when omitted)
            cdn_client: CloudFront client (built when a distribution id is configured)
            pipeline: Thumbnail pipeline
            include_site_assets: Publish the bundled static site next to the galleries
            logger: Optional logger instance
        """
        self.config = config
        self.publish_state = publish_state or PublishState()
        self.events = events
        self.pipeline = pipeline or ThumbnailPipeline(logger=logger)
        self.include_site_assets = include_site_assets
        self.logger = logger or logging.getLogger(__name__)
        self._s3 = s3_client
        self._cdn = cdn_client
        self.last_state: Optional[ExecutorState] = None
        self._thumbnail_worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix='thumbnails')

    def close(self) -> None:
        """Stop the thumbnail worker."""
        self._thumbnail_worker.shutdown(wait=True)

    def _connect(self) -> Tuple[S3Client, Optional[CdnClient]]:
        """
        Clients for this target. Configuration and credentials are checked
        before any client is built, so a bad setup never reaches the network.
        """
        self.config.require_valid()
        wants_cdn = self._cdn is None and bool(self.config.distribution)
        if self._s3 is None or wants_cdn:
            credentials = get_credentials(self.config)
            if self._s3 is None:
                self._s3 = S3Client(self.config, credentials, self.logger)
            if wants_cdn:
                self._cdn = CdnClient(self.config, credentials, self.logger)
        return self._s3, self._cdn

    def _emit_thumbnail(self, current: int, total: int, spec: ThumbnailSpec) -> None:
        if self.events is not None:
            self.events.emit(ThumbnailProgress(current, total, spec.thumb_filename))

    def prepare_thumbnails(
        self,
        root: Path,
        index: GalleryIndex,
        remote_root: str = ''
    ) -> Tuple[List[ThumbnailSpec], ThumbnailResults]:
        """
        Build, generate and prune thumbnails for a workspace.

        Returns:
            (specs whose thumbnail is available in the cache, run results)
        """
        specs = self.pipeline.build_specs(root, index, remote_root)
        if not specs and self.events is not None:
            self.events.emit(ThumbnailProgress(0, 0, ''))

        results = self.pipeline.ensure_all(specs, self._emit_thumbnail)
        self.pipeline.cleanup_stale(cache_root_for(Path(root).resolve()), specs)

        available = [spec for spec in specs if Path(spec.dest_path).is_file()]
        return available, results

    def stage_artifacts(
        self,
        root: Path,
        index: GalleryIndex,
        specs: List[ThumbnailSpec],
        staging_dir: Path,
        remote_root: str = ''
    ) -> Dict[str, Path]:
        """
        Everything a publish may upload, as remote key -> local file.

        Referenced originals first; thumbnails; rewritten metadata replaces the
        workspace's own galleries.json and gallery-details.json; site assets last.
        """
        root = Path(root).resolve()
        artifacts = {}

        for path in collect_referenced_files(root, index):
            artifacts[remote_key_for(root, path, remote_root)] = path

        for spec in specs:
            artifacts[spec.remote_key] = Path(spec.dest_path)

        rewriter = MetadataRewriter(root, specs, remote_root, logger=self.logger)
        metadata = rewriter.stage(index, Path(staging_dir) / 'metadata')
        artifacts.update(metadata.artifacts)

        if self.include_site_assets:
            artifacts.update(stage_site_assets(Path(staging_dir) / 'site', remote_root, self.logger))

        self.logger.info(f"Local: {len(artifacts)} artifacts ({len(specs)} thumbnails)")
        return artifacts

    async def preview(self, workspace: Path) -> PublishPlan:
        """
        Build and register a plan for publishing `workspace`.

        Raises:
            ConfigurationError: on missing configuration or credentials
            WorkspaceError: if the workspace metadata cannot be read
            RemoteError: if listing the bucket fails
        """
        root = Path(workspace).resolve()
        s3, _ = self._connect()
        remote_root = self.config.root_prefix

        loop = asyncio.get_running_loop()
        if self.events is not None:
            self.events.bind(loop)

        self.logger.info(f"Preview: {root} -> s3://{self.config.bucket_name}/{remote_root}")
        index = GalleryIndex.load(root)

        specs, _ = await loop.run_in_executor(
            self._thumbnail_worker, self.prepare_thumbnails, root, index, remote_root
        )

        staging_dir = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX))
        try:
            artifacts = await loop.run_in_executor(
                None, self.stage_artifacts, root, index, specs, staging_dir, remote_root
            )
            builder = PlanBuilder(s3, logger=self.logger)
            plan = await loop.run_in_executor(None, builder.build, artifacts, remote_root)
        except BaseException:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise

        self.publish_state.register(plan, staging_dir)
        return plan

    async def execute(self, plan_id: str) -> PublishResult:
        """
        Apply a registered plan.

        A completed run removes the plan; a cancelled or failed one leaves it
        registered. The executor's terminal state is kept in `last_state`.

        Raises:
            PlanNotFoundError: if the plan is unknown
            PlanBusyError: if the plan is already executing
            ConfigurationError: on missing configuration or credentials
            RemoteError: on transfer or invalidation failure
        """
        plan = self.publish_state.begin_execute(plan_id)
        self.last_state = None
        try:
            s3, cdn = self._connect()
            if self.events is not None:
                self.events.bind(asyncio.get_running_loop())

            executor = PublishExecutor(
                s3,
                self.publish_state,
                events=self.events,
                cdn_client=cdn,
                root=self.config.root_prefix,
                logger=self.logger,
            )
            result = await executor.execute(plan)
        finally:
            self.publish_state.end_execute(plan_id)

        self.last_state = executor.state
        if executor.state is ExecutorState.COMPLETE:
            self.discard(plan_id)
        return result

    def cancel(self, plan_id: str) -> None:
        """Request cancellation of a running or pending execute."""
        self.logger.info(f"Cancellation requested for plan {plan_id}")
        self.publish_state.cancel(plan_id)

    def discard(self, plan_id: str) -> None:
        """Forget a plan and delete its staged files."""
        staging_dir = self.publish_state.remove(plan_id)
        if staging_dir is not None:
            shutil.rmtree(staging_dir, ignore_errors=True)
