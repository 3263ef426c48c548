"""
ThumbnailGenerator - Resizes gallery images into cached WebP thumbnails.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps

from .errors import ThumbnailError


class ThumbnailGenerator:
    """
    Generates WebP thumbnails from gallery images using Pillow.
    """

    def __init__(
        self,
        size: int = 800,
        quality: int = 85,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize thumbnail generator.

        Args:
            size: Maximum dimension for thumbnails (default: 800)
            quality: WebP quality for output (default: 85)
            logger: Optional logger instance
        """
        self.size = size
        self.quality = quality
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def is_fresh(source: Path, dest: Path) -> bool:
        """
        Check whether a cached thumbnail is up to date.

        A thumbnail is fresh when it exists and its mtime is not older than the
        source's. Touching the source without changing it forces regeneration.
        """
        dest = Path(dest)
        if not dest.exists():
            return False
        try:
            source_mtime = Path(source).stat().st_mtime
        except OSError:
            source_mtime = 0.0
        try:
            dest_mtime = dest.stat().st_mtime
        except OSError:
            return False
        return dest_mtime >= source_mtime

    def generate(self, source: Path, dest: Path) -> None:
        """
        Generate a thumbnail and write it atomically.

        The EXIF orientation is applied first. Images larger than `size` on
        either side are downscaled so the longer side is exactly `size`;
        smaller images are re-encoded as they are.

        Raises:
            ThumbnailError: if the image cannot be decoded, encoded or written
        """
        source = Path(source)
        dest = Path(dest)
        tmp = dest.with_name(dest.name + '.tmp')

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)

            with Image.open(source) as img:
                img = ImageOps.exif_transpose(img)
                img = self._convert_color_mode(img)
                if img.width > self.size or img.height > self.size:
                    img.thumbnail((self.size, self.size), Image.Resampling.LANCZOS)
                img.save(tmp, format='WEBP', quality=self.quality)

            os.replace(tmp, dest)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            if tmp.exists():
                tmp.unlink()
            self.logger.error(f"Error generating thumbnail for {source}: {e}")
            raise ThumbnailError(f"Failed to generate thumbnail for {source}: {e}") from e

        self.logger.debug(f"Generated thumbnail: {dest}")

    def _convert_color_mode(self, img: Image.Image) -> Image.Image:
        """Convert image to a mode the WebP encoder accepts."""
        if img.mode in ('RGB', 'RGBA'):
            return img
        if img.mode in ('LA', 'PA') or (img.mode == 'P' and 'transparency' in img.info):
            return img.convert('RGBA')
        return img.convert('RGB')
