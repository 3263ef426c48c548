"""
ProgressPrinter - Displays publish and thumbnail events on the console.
"""

import logging
import sys
from typing import Optional, TextIO

from .events import (
    ACTION_INVALIDATE,
    Event,
    EventChannel,
    PublishErrorEvent,
    PublishProgress,
    PublishResult,
    ThumbnailProgress,
)


class ProgressPrinter:
    """
    Displays events with optional per-file output.
    """

    def __init__(
        self,
        show_files: bool = False,
        log_interval: int = 100,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress display.

        Args:
            show_files: If True, print each file as it's processed
            log_interval: Log summary progress every N files (when not show_files)
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)
        self.last_logged = 0
        self.last_thumbnail_logged = 0
        self.errors = 0
        self.result: Optional[PublishResult] = None

    def _print(self, text: str) -> None:
        print(text, file=self.output)

    def on_thumbnail(self, event: ThumbnailProgress) -> None:
        """Called after each thumbnail."""
        if event.total == 0:
            self.logger.info("No thumbnails to generate")
            return

        if self.show_files:
            self._print(f"  [THUMB] {event.current}/{event.total} {event.filename}")
        elif event.current == event.total or event.current - self.last_thumbnail_logged >= self.log_interval:
            self.last_thumbnail_logged = event.current
            self.logger.info(f"Thumbnails: {event.current}/{event.total}")

    def on_progress(self, event: PublishProgress) -> None:
        """Called before each upload, delete and the invalidation."""
        if event.action == ACTION_INVALIDATE:
            self.logger.info("Invalidating CloudFront cache...")
            return

        if self.show_files:
            self._print(f"  [{event.action.upper()}] {event.current}/{event.total} {event.file}")
        elif event.current == event.total or event.current - self.last_logged >= self.log_interval:
            self.last_logged = event.current
            self.logger.info(f"Progress: {event.current}/{event.total} ({event.action})")

    def on_error(self, event: PublishErrorEvent) -> None:
        """Called when a publish step fails."""
        self.errors += 1
        if event.file:
            self._print(f"  [ERROR] {event.file} -> {event.error}")
        else:
            self._print(f"  [ERROR] {event.error}")

    def on_result(self, event: PublishResult) -> None:
        self.result = event

    def handle(self, event: Event) -> None:
        """Dispatch one event to its handler."""
        if isinstance(event, ThumbnailProgress):
            self.on_thumbnail(event)
        elif isinstance(event, PublishProgress):
            self.on_progress(event)
        elif isinstance(event, PublishErrorEvent):
            self.on_error(event)
        elif isinstance(event, PublishResult):
            self.on_result(event)

    async def consume(self, channel: EventChannel) -> None:
        """Print events until the channel is closed."""
        async for event in channel:
            self.handle(event)
