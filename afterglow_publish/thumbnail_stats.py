"""
ThumbnailResults - Outcome of a thumbnail pipeline run.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple


@dataclass
class ThumbnailResults:
    """
    Statistics for a thumbnail run.

    Attributes:
        total: Number of specs in the run
        generated: Thumbnails written
        skipped: Thumbnails already fresh
        errors: (source path, message) for every failed thumbnail
        start_time: Start timestamp
    """
    total: int = 0
    generated: int = 0
    skipped: int = 0
    errors: List[Tuple[Path, str]] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time
