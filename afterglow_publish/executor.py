"""
PublishExecutor - Applies an approved plan to the bucket.

States: UPLOADING -> DELETING -> INVALIDATING -> COMPLETE, with CANCELLED
reachable from UPLOADING and DELETING only. Cancellation is polled before
each upload and delete; a transfer in flight always finishes first.
"""

import asyncio
import enum
import functools
import logging
from typing import Optional

from .cdn_client import INVALIDATION_TIMEOUT_SECONDS, CdnClient
from .errors import (
    InvalidationError,
    InvalidationTimeoutError,
    RemoteError,
    WorkspaceError,
)
from .events import (
    ACTION_DELETE,
    ACTION_INVALIDATE,
    ACTION_UPLOAD,
    Event,
    EventChannel,
    PublishErrorEvent,
    PublishProgress,
    PublishResult,
)
from .planner import PublishPlan, is_managed_key
from .publish_state import PublishState
from .s3_client import S3Client


class ExecutorState(enum.Enum):
    UPLOADING = 'uploading'
    DELETING = 'deleting'
    INVALIDATING = 'invalidating'
    COMPLETE = 'complete'
    CANCELLED = 'cancelled'


class PublishExecutor:
    """
    Runs one plan: uploads, then deletes, then CDN invalidation.

    One instance per execute call. Transfers run one at a time; any transfer
    or invalidation failure emits an error event and aborts the call.
    """

    def __init__(
        self,
        s3_client: S3Client,
        publish_state: PublishState,
        events: Optional[EventChannel] = None,
        cdn_client: Optional[CdnClient] = None,
        root: str = '',
        invalidation_timeout: float = INVALIDATION_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize executor.

        Args:
            s3_client: Object store client
            publish_state: Registry holding the plan's cancel flag
            events: Channel for progress/error/result events
            cdn_client: CloudFront client; invalidation is skipped without one
            root: Normalized remote root prefix
            invalidation_timeout: Seconds allowed for the invalidation request
            logger: Optional logger instance
        """
        self.s3 = s3_client
        self.publish_state = publish_state
        self.events = events
        self.cdn = cdn_client
        self.root = root
        self.invalidation_timeout = invalidation_timeout
        self.logger = logger or logging.getLogger(__name__)
        self.state = ExecutorState.UPLOADING

    def _emit(self, event: Event) -> None:
        if self.events is not None:
            self.events.emit(event)

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    def _finish(self, plan: PublishPlan, uploaded: int, deleted: int) -> PublishResult:
        result = PublishResult(uploaded=uploaded, deleted=deleted, unchanged=plan.unchanged_count)
        self._emit(result)
        return result

    def _cancelled(self, plan: PublishPlan) -> bool:
        if self.publish_state.is_cancelled(plan.plan_id):
            self.logger.info(f"Publish {plan.plan_id} cancelled during {self.state.value}")
            self.state = ExecutorState.CANCELLED
            return True
        return False

    async def execute(self, plan: PublishPlan) -> PublishResult:
        """
        Apply a plan.

        Returns:
            Counts of uploaded, deleted and unchanged files. Check `state` to
            tell a completed run from a cancelled one.

        Raises:
            RemoteError: on any upload or delete failure
            WorkspaceError: if a file to upload cannot be read
            InvalidationError: if CloudFront rejects the invalidation
            InvalidationTimeoutError: if the invalidation exceeds its time bound
        """
        total = len(plan.to_upload) + len(plan.to_delete)
        current = 0
        uploaded = 0
        deleted = 0

        self.state = ExecutorState.UPLOADING
        self.logger.info(
            f"Executing plan {plan.plan_id}: {len(plan.to_upload)} uploads, "
            f"{len(plan.to_delete)} deletes"
        )

        for sync_file in plan.to_upload:
            if self._cancelled(plan):
                return self._finish(plan, uploaded, deleted)

            current += 1
            self._emit(PublishProgress(current, total, sync_file.remote_key, ACTION_UPLOAD))
            self.logger.debug(f"Uploading: {sync_file.remote_key} ({sync_file.content_type})")

            try:
                await self._run(
                    self.s3.upload_file,
                    sync_file.remote_key,
                    sync_file.local_path,
                    sync_file.content_type,
                )
            except (RemoteError, WorkspaceError) as e:
                self.logger.error(str(e))
                self._emit(PublishErrorEvent(error=str(e), file=sync_file.remote_key))
                raise
            uploaded += 1

        self.state = ExecutorState.DELETING
        for key in plan.to_delete:
            if not is_managed_key(key, self.root):
                self.logger.warning(f"Refusing to delete key outside managed areas: {key}")
                continue

            if self._cancelled(plan):
                return self._finish(plan, uploaded, deleted)

            current += 1
            self._emit(PublishProgress(current, total, key, ACTION_DELETE))
            self.logger.debug(f"Deleting: {key}")

            try:
                await self._run(self.s3.delete_object, key)
            except RemoteError as e:
                self.logger.error(str(e))
                self._emit(PublishErrorEvent(error=str(e), file=key))
                raise
            deleted += 1

        self.state = ExecutorState.INVALIDATING
        if self.cdn is not None and self.cdn.enabled:
            await self._invalidate(total)

        self.state = ExecutorState.COMPLETE
        self.logger.info(
            f"Publish complete: {uploaded} uploaded, {deleted} deleted, "
            f"{plan.unchanged_count} unchanged"
        )
        return self._finish(plan, uploaded, deleted)

    async def _invalidate(self, total: int) -> None:
        self._emit(PublishProgress(total, total, '', ACTION_INVALIDATE))
        try:
            await asyncio.wait_for(
                self._run(self.cdn.invalidate, self.root),
                timeout=self.invalidation_timeout,
            )
        except asyncio.TimeoutError:
            error = InvalidationTimeoutError(self.invalidation_timeout)
            self.logger.error(str(error))
            self._emit(PublishErrorEvent(error=str(error)))
            raise error from None
        except InvalidationError as e:
            self.logger.error(str(e))
            self._emit(PublishErrorEvent(error=str(e)))
            raise
