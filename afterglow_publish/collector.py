"""
Reference collector - the exact set of local files a publish may touch.

Walks the gallery metadata graph rather than the filesystem: anything not
referenced from galleries.json or a gallery-details.json is never published.
"""

import logging
from pathlib import Path, PurePosixPath
from typing import List, Optional

from .errors import WorkspaceError
from .gallery import DETAILS_FILENAME, INDEX_FILENAME, GalleryDetails, GalleryIndex


logger = logging.getLogger(__name__)

GALLERIES_DIR = 'galleries/'


def resolve_reference(root: Path, base: Path, reference: str) -> Optional[Path]:
    """
    Resolve a path found in gallery metadata.

    Args:
        root: Resolved workspace root
        base: Directory the reference is relative to
        reference: Path string from the metadata

    Returns:
        The resolved file, or None if the reference is empty, points outside
        the workspace, or does not exist
    """
    if not reference:
        return None
    candidate = (base / reference).resolve()
    if not candidate.is_relative_to(root):
        logger.warning(f"Ignoring reference outside workspace: {reference}")
        return None
    if not candidate.is_file():
        logger.debug(f"Referenced file missing, skipping: {candidate}")
        return None
    return candidate


def gallery_dir_for(root: Path, slug: str) -> Optional[Path]:
    """
    Workspace directory of a gallery.

    The slug must be a plain relative path (no '.', '..' or empty segments)
    naming a directory strictly inside the workspace, so that it maps to the
    same remote key whether resolved on disk or used as written.

    Args:
        root: Resolved workspace root
        slug: Gallery slug

    Returns:
        root / slug, or None if the slug is empty or escapes the workspace
    """
    if not slug:
        return None
    parts = slug.replace('\\', '/').split('/')
    if any(part in ('', '.', '..') for part in parts):
        logger.warning(f"Ignoring gallery with unsafe slug: {slug}")
        return None
    gallery_dir = root / slug
    resolved = gallery_dir.resolve()
    if resolved == root or not resolved.is_relative_to(root):
        logger.warning(f"Ignoring gallery outside workspace: {slug}")
        return None
    return gallery_dir


def remote_key_for(root: Path, path: Path, remote_root: str) -> str:
    """
    Remote key of a workspace file: {remote_root}galleries/{relative path}.

    Raises:
        WorkspaceError: if the file is not inside the workspace
    """
    try:
        relative = PurePosixPath(Path(path).relative_to(root).as_posix())
    except ValueError as e:
        raise WorkspaceError(f"File outside workspace: {path}") from e
    return f"{remote_root}{GALLERIES_DIR}{relative}"


def collect_referenced_files(root: Path, index: Optional[GalleryIndex] = None) -> List[Path]:
    """
    Collect every local file reachable from the gallery metadata.

    Includes galleries.json, each existing gallery-details.json, each existing
    cover image, and each existing photo thumbnail/full image.

    Args:
        root: Workspace root
        index: Already parsed index (loaded from root when omitted)

    Returns:
        Sorted, deduplicated list of resolved file paths

    Raises:
        WorkspaceError: if galleries.json is missing or any metadata file is unreadable
    """
    root = Path(root).resolve()
    if index is None:
        index = GalleryIndex.load(root)

    found = {root / INDEX_FILENAME}

    for gallery in index.galleries:
        if not gallery.slug:
            logger.warning(f"Skipping gallery without slug: {gallery.name or '<unnamed>'}")
            continue
        gallery_dir = gallery_dir_for(root, gallery.slug)
        if gallery_dir is None:
            continue

        cover = resolve_reference(root, root, gallery.cover)
        if cover:
            found.add(cover)

        details = GalleryDetails.load(root, gallery.slug)
        if details is None:
            logger.debug(f"No details file for gallery {gallery.slug}")
            continue
        details_file = resolve_reference(root, gallery_dir, DETAILS_FILENAME)
        if details_file is None:
            continue
        found.add(details_file)

        for photo in details.photos:
            for reference in (photo.thumbnail, photo.full):
                path = resolve_reference(root, gallery_dir, reference)
                if path:
                    found.add(path)

    logger.debug(f"Collected {len(found)} referenced files under {root}")
    return sorted(found)
