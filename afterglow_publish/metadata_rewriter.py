"""
MetadataRewriter - Publish-time copies of gallery metadata pointing at thumbnails.

The workspace files are never modified. Rewritten copies and the derived
search index are written to a staging directory and published in place of
the originals.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .collector import GALLERIES_DIR, gallery_dir_for, resolve_reference
from .errors import WorkspaceError
from .gallery import DETAILS_FILENAME, INDEX_FILENAME, GalleryDetails, GalleryIndex
from .thumbnail_cache import (
    THUMBS_DIR,
    ThumbnailSpec,
    cache_root_for,
    cover_dir_for,
    thumb_filename_for,
)


SEARCH_INDEX_FILENAME = 'search-index.json'
SEARCH_INDEX_VERSION = 1


@dataclass
class RewrittenMetadata:
    """
    Staged metadata artifacts.

    Attributes:
        artifacts: Remote key -> staged local file
        search_index: The search index document that was written
    """
    artifacts: Dict[str, Path] = field(default_factory=dict)
    search_index: Dict[str, Any] = field(default_factory=dict)


class MetadataRewriter:
    """
    Rewrites galleries.json and gallery-details.json for publishing.

    A cover or photo thumbnail is redirected to its generated WebP only when a
    spec was built for that exact source image; everything else passes through.
    """

    def __init__(
        self,
        root: Path,
        specs: List[ThumbnailSpec],
        remote_root: str = '',
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the rewriter.

        Args:
            root: Workspace root
            specs: Thumbnail specs of this publish
            remote_root: Normalized remote root prefix
            logger: Optional logger instance
        """
        self.root = Path(root).resolve()
        self.remote_root = remote_root
        self.logger = logger or logging.getLogger(__name__)
        self._cache_root = cache_root_for(self.root)
        self._by_dest = {Path(spec.dest_path): spec for spec in specs}

    def _lookup(self, base: Path, reference: str, directory: str) -> Optional[ThumbnailSpec]:
        if not reference:
            return None
        dest = self._cache_root / directory / thumb_filename_for(reference)
        spec = self._by_dest.get(dest)
        if spec is None:
            return None
        source = resolve_reference(self.root, base, reference)
        if source is None or Path(spec.source_path) != source:
            return None
        return spec

    def rewrite_cover(self, slug: str, cover: str) -> str:
        """Cover value for the published index: '{dir}/.thumbs/{file}' or unchanged."""
        spec = self._lookup(self.root, cover, cover_dir_for(cover, slug))
        if spec is None:
            return cover
        return f"{spec.slug}/{THUMBS_DIR}/{spec.thumb_filename}"

    def rewrite_thumbnail(self, slug: str, thumbnail: str) -> str:
        """Photo thumbnail value for a published details file: '.thumbs/{file}' or unchanged."""
        spec = self._lookup(self.root / slug, thumbnail, slug)
        if spec is None:
            return thumbnail
        return spec.relative_url

    def rewrite_index(self, index: GalleryIndex) -> Any:
        """Index document with covers redirected, in the shape it was read in."""
        entries = []
        for gallery in index.galleries:
            data = gallery.to_dict()
            if gallery.slug and gallery.cover:
                data['cover'] = self.rewrite_cover(gallery.slug, gallery.cover)
            entries.append(data)
        return index.to_json(entries)

    def rewrite_details(self, slug: str, details: GalleryDetails) -> dict:
        """Details document with photo thumbnails redirected."""
        photos = []
        for photo in details.photos:
            data = photo.to_dict()
            data['thumbnail'] = self.rewrite_thumbnail(slug, photo.thumbnail)
            photos.append(data)
        return details.to_dict(photos)

    def build_search_index(
        self,
        index: GalleryIndex,
        details_by_slug: Dict[str, GalleryDetails]
    ) -> dict:
        """Flat search index over every gallery and photo."""
        galleries = []
        photos = []
        for gallery in index.galleries:
            if not gallery.slug:
                continue
            details = details_by_slug.get(gallery.slug)
            galleries.append({
                'slug': gallery.slug,
                'name': gallery.name,
                'date': gallery.date,
                'description': details.description if details else '',
                'tags': list(gallery.tags),
            })
            if details is None:
                continue
            for photo in details.photos:
                photos.append({
                    'gallerySlug': gallery.slug,
                    'thumbnail': self.rewrite_thumbnail(gallery.slug, photo.thumbnail),
                    'full': photo.full,
                    'alt': photo.alt,
                    'tags': list(photo.tags),
                })
        return {
            'version': SEARCH_INDEX_VERSION,
            'galleries': galleries,
            'photos': photos,
        }

    def stage(self, index: GalleryIndex, staging_dir: Path) -> RewrittenMetadata:
        """
        Write every rewritten artifact into `staging_dir`.

        Returns:
            RewrittenMetadata mapping remote keys to the staged files

        Raises:
            WorkspaceError: if a details file is unreadable or a staged file cannot be written
        """
        staging_dir = Path(staging_dir)
        galleries_prefix = f"{self.remote_root}{GALLERIES_DIR}"
        result = RewrittenMetadata()

        details_by_slug = {}
        for gallery in index.galleries:
            if not gallery.slug or gallery.slug in details_by_slug:
                continue
            if gallery_dir_for(self.root, gallery.slug) is None:
                continue
            details = GalleryDetails.load(self.root, gallery.slug)
            if details is not None:
                details_by_slug[gallery.slug] = details

        path = staging_dir / INDEX_FILENAME
        _write_json(path, self.rewrite_index(index))
        result.artifacts[f"{galleries_prefix}{INDEX_FILENAME}"] = path

        for slug, details in details_by_slug.items():
            path = staging_dir / slug / DETAILS_FILENAME
            _write_json(path, self.rewrite_details(slug, details))
            result.artifacts[f"{galleries_prefix}{slug}/{DETAILS_FILENAME}"] = path

        result.search_index = self.build_search_index(index, details_by_slug)
        path = staging_dir / SEARCH_INDEX_FILENAME
        _write_json(path, result.search_index)
        result.artifacts[f"{galleries_prefix}{SEARCH_INDEX_FILENAME}"] = path

        self.logger.info(
            f"Staged metadata: {len(details_by_slug)} galleries, "
            f"{len(result.search_index['photos'])} photos in search index"
        )
        return result


def _write_json(path: Path, data: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise WorkspaceError(f"Cannot write staged file {path}: {e}") from e
