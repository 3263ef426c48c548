"""
Reporter - Generates human-readable reports for plans and thumbnail runs.
"""

import logging
import sys
from typing import Optional, TextIO

from .config import PublishConfig
from .events import PublishResult
from .planner import PublishPlan
from .thumbnail_stats import ThumbnailResults


class Reporter:
    """
    Generates human-readable reports for plans and thumbnail runs.
    """

    def __init__(
        self,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reporter.

        Args:
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _print(self, text: str = "") -> None:
        """Print to output stream."""
        print(text, file=self.output)

    def _format_bytes(self, bytes_val: int) -> str:
        """Format bytes as human-readable string."""
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} PB"

    def _format_duration(self, seconds: float) -> str:
        """Format duration as human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        elif seconds < 3600:
            return f"{seconds / 60:.1f} minutes"
        else:
            return f"{seconds / 3600:.1f} hours"

    def _print_target(self, config: PublishConfig) -> None:
        """Print the publish target."""
        self._print("Target:")
        if config.endpoint:
            self._print(f"  Endpoint:    {config.endpoint}")
        else:
            self._print(f"  Region:      {config.region}")
        self._print(f"  Bucket:      {config.bucket_name}/{config.root_prefix}")
        if config.distribution:
            self._print(f"  CloudFront:  {config.distribution}")
        else:
            self._print("  CloudFront:  not configured (no invalidation)")

    def report_plan(
        self,
        plan: PublishPlan,
        config: Optional[PublishConfig] = None,
        show_files: bool = False,
        limit: int = 100
    ) -> None:
        """
        Summarize a publish plan.

        Args:
            plan: The plan to report on
            config: Target configuration, printed when given
            show_files: List every upload and delete
            limit: Maximum files listed per section
        """
        self._print("=" * 70)
        self._print("PUBLISH PLAN SUMMARY")
        self._print("=" * 70)
        self._print()

        self._print(f"Plan:          {plan.plan_id}")
        if config is not None:
            self._print_target(config)
        self._print()

        self._print("Changes:")
        self._print(f"  To Upload:   {len(plan.to_upload):>8,}  ({self._format_bytes(plan.upload_bytes)})")
        self._print(f"  To Delete:   {len(plan.to_delete):>8,}")
        self._print(f"  Unchanged:   {plan.unchanged_count:>8,}")
        self._print(f"  Total Files: {plan.total_files:>8,}")
        self._print()

        if plan.is_empty:
            self._print("✓ Bucket is already up to date!")
            self._print()
            return

        if not show_files:
            return

        if plan.to_upload:
            self._print("Uploads:")
            self._print("-" * 70)
            self._print(f"{'Key':<48} {'Type':<12} {'Size':>8}")
            self._print("-" * 70)
            for sync_file in plan.to_upload[:limit]:
                content_type = sync_file.content_type.split('/')[-1]
                self._print(
                    f"{sync_file.remote_key:<48} {content_type:<12} "
                    f"{self._format_bytes(sync_file.size_bytes):>8}"
                )
            if len(plan.to_upload) > limit:
                self._print(f"  ... and {len(plan.to_upload) - limit:,} more")
            self._print()

        if plan.to_delete:
            self._print("Deletes:")
            self._print("-" * 70)
            for key in plan.to_delete[:limit]:
                self._print(f"  {key}")
            if len(plan.to_delete) > limit:
                self._print(f"  ... and {len(plan.to_delete) - limit:,} more")
            self._print()

    def report_result(self, result: PublishResult, cancelled: bool = False) -> None:
        """Print the outcome of an execute call."""
        self._print()
        if cancelled:
            self._print("Publish cancelled.")
        else:
            self._print("Publish complete.")
        self._print(f"  Uploaded:    {result.uploaded:,}")
        self._print(f"  Deleted:     {result.deleted:,}")
        self._print(f"  Unchanged:   {result.unchanged:,}")

    def report_thumbnails(self, results: ThumbnailResults, removed: int = 0) -> None:
        """Print the outcome of a thumbnail run."""
        self._print()
        self._print(f"Thumbnails:  {results.total:,}")
        self._print(f"  Generated: {results.generated:,}")
        self._print(f"  Fresh:     {results.skipped:,}")
        self._print(f"  Failed:    {results.failed:,}")
        if removed:
            self._print(f"  Removed:   {removed:,} stale")
        self._print(f"  Time:      {self._format_duration(results.elapsed_seconds)}")

        for path, error in results.errors:
            self._print(f"  ⚠️  {path}: {error}")
