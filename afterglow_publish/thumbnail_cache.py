"""
Thumbnail pipeline - derives, caches and prunes WebP thumbnails for a workspace.

Cache layout: {workspace}/.data/thumbnails/{slug-or-cover-dir}/{stem}.webp
Remote layout: {remote_root}galleries/{slug-or-cover-dir}/.thumbs/{stem}.webp
"""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, List, Optional

from .collector import GALLERIES_DIR, gallery_dir_for, resolve_reference
from .errors import ThumbnailError
from .gallery import GalleryDetails, GalleryIndex
from .thumbnail_generator import ThumbnailGenerator
from .thumbnail_stats import ThumbnailResults


THUMBS_DIR = '.thumbs'
THUMB_EXTENSION = '.webp'


@dataclass(frozen=True)
class ThumbnailSpec:
    """
    One derived thumbnail.

    Attributes:
        source_path: Original image in the workspace
        dest_path: Cached thumbnail location
        remote_key: Key the thumbnail is published under
        slug: Gallery slug (or the cover's parent directory)
        thumb_filename: Thumbnail filename, e.g. '01.webp'
    """
    source_path: Path
    dest_path: Path
    remote_key: str
    slug: str
    thumb_filename: str

    @property
    def relative_url(self) -> str:
        """Path of the thumbnail relative to its gallery directory."""
        return f"{THUMBS_DIR}/{self.thumb_filename}"


ProgressCallback = Callable[[int, int, ThumbnailSpec], None]


def cache_root_for(root: Path) -> Path:
    """Thumbnail cache directory of a workspace."""
    return Path(root) / '.data' / 'thumbnails'


def thumb_filename_for(reference: str) -> str:
    """Thumbnail filename for an image reference: its stem plus '.webp'."""
    return PurePosixPath(reference).stem + THUMB_EXTENSION


def cover_dir_for(cover: str, slug: str) -> str:
    """Directory a cover thumbnail is cached and published under."""
    parent = PurePosixPath(cover).parent.as_posix()
    return slug if parent in ('', '.') else parent


class ThumbnailPipeline:
    """
    Builds thumbnail specs for a workspace and keeps the cache in sync with them.
    """

    def __init__(
        self,
        generator: Optional[ThumbnailGenerator] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the pipeline.

        Args:
            generator: Thumbnail generator (800px / q85 WebP by default)
            logger: Optional logger instance
        """
        self.generator = generator or ThumbnailGenerator()
        self.logger = logger or logging.getLogger(__name__)

    def build_specs(
        self,
        root: Path,
        index: GalleryIndex,
        remote_root: str = ''
    ) -> List[ThumbnailSpec]:
        """
        Build one spec per distinct cover and photo thumbnail image.

        Specs sharing a destination are deduplicated, first one wins, so an
        image used as both cover and photo thumbnail is generated once.

        Args:
            root: Workspace root
            index: Parsed gallery index
            remote_root: Normalized remote root prefix

        Returns:
            Specs in gallery order, covers before photos
        """
        root = Path(root).resolve()
        cache_root = cache_root_for(root)
        galleries_prefix = f"{remote_root}{GALLERIES_DIR}"
        specs = []
        seen_dest = set()

        def add(source: Path, directory: str, reference: str) -> None:
            thumb_filename = thumb_filename_for(reference)
            dest_path = cache_root / directory / thumb_filename
            if dest_path in seen_dest:
                return
            seen_dest.add(dest_path)
            specs.append(ThumbnailSpec(
                source_path=source,
                dest_path=dest_path,
                remote_key=f"{galleries_prefix}{directory}/{THUMBS_DIR}/{thumb_filename}",
                slug=directory,
                thumb_filename=thumb_filename,
            ))

        for gallery in index.galleries:
            gallery_dir = gallery_dir_for(root, gallery.slug)
            if gallery_dir is None:
                continue

            source = resolve_reference(root, root, gallery.cover)
            if source:
                add(source, cover_dir_for(gallery.cover, gallery.slug), gallery.cover)

            details = GalleryDetails.load(root, gallery.slug)
            if details is None:
                continue

            for photo in details.photos:
                source = resolve_reference(root, gallery_dir, photo.thumbnail)
                if source:
                    add(source, gallery.slug, photo.thumbnail)

        self.logger.debug(f"Built {len(specs)} thumbnail specs")
        return specs

    def ensure_all(
        self,
        specs: List[ThumbnailSpec],
        on_progress: Optional[ProgressCallback] = None
    ) -> ThumbnailResults:
        """
        Generate every stale or missing thumbnail.

        Failures are collected, never raised. `on_progress(current, total, spec)`
        is called after each spec whatever its outcome.
        """
        results = ThumbnailResults(total=len(specs))

        for i, spec in enumerate(specs, start=1):
            if self.generator.is_fresh(spec.source_path, spec.dest_path):
                results.skipped += 1
            else:
                try:
                    self.generator.generate(spec.source_path, spec.dest_path)
                    results.generated += 1
                except ThumbnailError as e:
                    results.errors.append((spec.source_path, str(e)))

            if on_progress:
                on_progress(i, results.total, spec)

        self.logger.info(
            f"Thumbnails: {results.generated} generated, {results.skipped} up to date, "
            f"{results.failed} failed ({results.elapsed_seconds:.1f}s)"
        )
        for source, message in results.errors:
            self.logger.warning(f"Thumbnail skipped for {source}: {message}")

        return results

    def cleanup_stale(self, cache_root: Path, specs: Iterable[ThumbnailSpec]) -> int:
        """
        Delete cached thumbnails no spec refers to, then empty directories.

        Best effort: individual failures are logged and skipped.

        Returns:
            Number of thumbnails removed
        """
        cache_root = Path(cache_root).resolve()
        if not cache_root.is_dir():
            return 0

        keep = {Path(spec.dest_path).resolve() for spec in specs}
        removed = 0

        for path in sorted(cache_root.rglob(f"*{THUMB_EXTENSION}")):
            if not path.is_file() or path in keep:
                continue
            try:
                path.unlink()
                removed += 1
                self.logger.debug(f"Removed stale thumbnail: {path}")
            except OSError as e:
                self.logger.warning(f"Could not remove stale thumbnail {path}: {e}")

        # Deepest first so nested empty directories collapse
        for directory in sorted((p for p in cache_root.rglob('*') if p.is_dir()),
                                key=lambda p: len(p.parts), reverse=True):
            try:
                if not any(directory.iterdir()):
                    directory.rmdir()
            except OSError as e:
                self.logger.warning(f"Could not remove directory {directory}: {e}")

        if removed:
            self.logger.info(f"Removed {removed} stale thumbnails from cache")
        return removed
