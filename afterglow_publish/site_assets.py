"""
Static site assets bundled with the package and published next to the galleries.
"""

import logging
from importlib import resources
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from PIL import Image, ImageDraw

from .errors import WorkspaceError


FAVICON_SIZES = [(16, 16), (32, 32), (48, 48)]
FAVICON_COLOR = (245, 162, 93, 255)

logger = logging.getLogger(__name__)


def _walk(node, prefix: str = '') -> Iterator[Tuple[str, bytes]]:
    for child in sorted(node.iterdir(), key=lambda c: c.name):
        if child.name.startswith('.') or child.name == '__pycache__':
            continue
        relative = f"{prefix}{child.name}"
        if child.is_dir():
            yield from _walk(child, f"{relative}/")
        else:
            yield relative, child.read_bytes()


def bundled_assets() -> Iterator[Tuple[str, bytes]]:
    """Yield (site-relative path, content) for every bundled site file."""
    yield from _walk(resources.files(__package__) / 'site')


def render_favicon(size: int = 64) -> Image.Image:
    """Draw the site icon: a warm disc on a transparent background."""
    img = Image.new('RGBA', (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    margin = size // 8
    draw.ellipse((margin, margin, size - margin - 1, size - margin - 1), fill=FAVICON_COLOR)
    return img


def stage_site_assets(
    staging_dir: Path,
    remote_root: str = '',
    log: Optional[logging.Logger] = None
) -> Dict[str, Path]:
    """
    Write the site files into `staging_dir`.

    Returns:
        Remote key -> staged file, e.g. '{root}index.html', '{root}afterglow/js/app.js',
        '{root}favicon.png', '{root}favicon.ico'

    Raises:
        WorkspaceError: if a file cannot be written
    """
    log = log or logger
    staging_dir = Path(staging_dir)
    artifacts = {}

    try:
        for relative, content in bundled_assets():
            path = staging_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            artifacts[f"{remote_root}{relative}"] = path

        icon = render_favicon()
        png_path = staging_dir / 'favicon.png'
        icon.save(png_path, format='PNG', optimize=True)
        artifacts[f"{remote_root}favicon.png"] = png_path

        ico_path = staging_dir / 'favicon.ico'
        icon.save(ico_path, format='ICO', sizes=FAVICON_SIZES)
        artifacts[f"{remote_root}favicon.ico"] = ico_path
    except OSError as e:
        raise WorkspaceError(f"Cannot stage site assets in {staging_dir}: {e}") from e

    log.debug(f"Staged {len(artifacts)} site assets")
    return artifacts
