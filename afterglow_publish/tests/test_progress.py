"""Tests for ProgressPrinter."""

import asyncio
import io

from afterglow_publish.events import (
    EventChannel,
    PublishErrorEvent,
    PublishProgress,
    PublishResult,
    ThumbnailProgress,
)
from afterglow_publish.progress import ProgressPrinter


class TestProgressPrinter:
    """Tests for ProgressPrinter."""

    def test_show_files(self):
        """Test per-file lines in show-files mode."""
        output = io.StringIO()
        printer = ProgressPrinter(show_files=True, output=output)

        printer.handle(PublishProgress(1, 2, 'galleries/a.jpg', 'upload'))
        printer.handle(PublishProgress(2, 2, 'galleries/old.jpg', 'delete'))
        printer.handle(ThumbnailProgress(1, 1, 'a.webp'))

        text = output.getvalue()
        assert '[UPLOAD] 1/2 galleries/a.jpg' in text
        assert '[DELETE] 2/2 galleries/old.jpg' in text
        assert '[THUMB] 1/1 a.webp' in text

    def test_quiet_progress_logged(self, caplog):
        """Test summary lines are logged at the interval instead of printed."""
        output = io.StringIO()
        printer = ProgressPrinter(log_interval=2, output=output)

        with caplog.at_level('INFO'):
            for i in range(1, 4):
                printer.handle(PublishProgress(i, 3, f"k{i}", 'upload'))

        assert output.getvalue() == ''
        assert 'Progress: 2/3 (upload)' in caplog.text
        assert 'Progress: 3/3 (upload)' in caplog.text
        assert 'Progress: 1/3' not in caplog.text

    def test_errors_and_result(self):
        """Test errors are counted and the result is kept."""
        output = io.StringIO()
        printer = ProgressPrinter(output=output)

        printer.handle(PublishErrorEvent('Upload failed', file='galleries/a.jpg'))
        printer.handle(PublishResult(1, 0, 2))

        assert printer.errors == 1
        assert printer.result == PublishResult(1, 0, 2)
        assert '[ERROR] galleries/a.jpg -> Upload failed' in output.getvalue()

    def test_consume(self):
        """Test events are consumed from a channel until it closes."""
        output = io.StringIO()
        printer = ProgressPrinter(show_files=True, output=output)

        async def run():
            channel = EventChannel(asyncio.get_running_loop())
            task = asyncio.ensure_future(printer.consume(channel))
            channel.emit(PublishProgress(1, 1, 'index.html', 'upload'))
            channel.emit(PublishResult(1, 0, 0))
            channel.close()
            await task

        asyncio.run(run())

        assert 'index.html' in output.getvalue()
        assert printer.result == PublishResult(1, 0, 0)
