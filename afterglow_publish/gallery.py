"""
Gallery metadata model: galleries.json and per-gallery gallery-details.json.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import WorkspaceError


INDEX_FILENAME = 'galleries.json'
DETAILS_FILENAME = 'gallery-details.json'


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ''


def _tags(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [t for t in value if isinstance(t, str)]


@dataclass
class Photo:
    """
    One photo entry of a gallery. Paths are relative to the gallery directory.

    Attributes:
        thumbnail: Image shown in grids
        full: Full-size image
        alt: Alt text
        tags: Free-form tags
        extra: Unknown keys, written back untouched
    """
    thumbnail: str = ''
    full: str = ''
    alt: str = ''
    tags: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    KNOWN_KEYS = ('thumbnail', 'full', 'alt', 'tags')

    @classmethod
    def from_dict(cls, data: dict) -> 'Photo':
        return cls(
            thumbnail=_str(data.get('thumbnail')),
            full=_str(data.get('full')),
            alt=_str(data.get('alt')),
            tags=_tags(data.get('tags')),
            extra={k: v for k, v in data.items() if k not in cls.KNOWN_KEYS},
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data.update({
            'thumbnail': self.thumbnail,
            'full': self.full,
            'alt': self.alt,
            'tags': list(self.tags),
        })
        return data


@dataclass
class Gallery:
    """
    One entry of the gallery index.

    Attributes:
        slug: Unique key, also the gallery's subdirectory name
        name: Display name
        date: Free-form date string
        cover: Workspace-relative cover image path
        tags: Free-form tags
        extra: Unknown keys, written back untouched
    """
    slug: str
    name: str = ''
    date: str = ''
    cover: str = ''
    tags: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    KNOWN_KEYS = ('slug', 'name', 'date', 'cover', 'tags')

    @classmethod
    def from_dict(cls, data: dict) -> 'Gallery':
        return cls(
            slug=_str(data.get('slug')),
            name=_str(data.get('name')),
            date=_str(data.get('date')),
            cover=_str(data.get('cover')),
            tags=_tags(data.get('tags')),
            extra={k: v for k, v in data.items() if k not in cls.KNOWN_KEYS},
        )

    def to_dict(self) -> dict:
        data = {
            'name': self.name,
            'slug': self.slug,
            'date': self.date,
            'cover': self.cover,
        }
        data.update(self.extra)
        if self.tags or 'tags' in self.extra:
            data['tags'] = list(self.tags)
        return data


@dataclass
class GalleryIndex:
    """
    Normalized galleries.json.

    The file is either a bare list of galleries (legacy) or an object
    {schemaVersion, galleries}. Both parse into the same gallery list; the
    shape is remembered so a rewritten copy is written back the same way.
    """
    galleries: List[Gallery] = field(default_factory=list)
    wrapped: bool = True
    schema_version: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, raw: Any) -> 'GalleryIndex':
        """Parse either index shape. Anything else yields an empty index."""
        if isinstance(raw, list):
            entries = raw
            return cls(
                galleries=[Gallery.from_dict(g) for g in entries if isinstance(g, dict)],
                wrapped=False,
            )

        if isinstance(raw, dict):
            entries = raw.get('galleries')
            if not isinstance(entries, list):
                entries = []
            version = raw.get('schemaVersion')
            return cls(
                galleries=[Gallery.from_dict(g) for g in entries if isinstance(g, dict)],
                wrapped=True,
                schema_version=version if isinstance(version, int) else None,
                extra={k: v for k, v in raw.items() if k not in ('schemaVersion', 'galleries')},
            )

        return cls()

    @classmethod
    def load(cls, root: Path) -> 'GalleryIndex':
        """
        Load galleries.json from a workspace root.

        Raises:
            WorkspaceError: if the file is missing or not valid JSON
        """
        path = Path(root) / INDEX_FILENAME
        if not path.is_file():
            raise WorkspaceError(f"Gallery index not found: {path}")
        return cls.parse(read_json(path))

    def to_json(self, galleries: Optional[List[dict]] = None) -> Any:
        """Serialize back to the shape the index was read in."""
        entries = galleries if galleries is not None else [g.to_dict() for g in self.galleries]
        if not self.wrapped:
            return entries
        data = {}
        if self.schema_version is not None:
            data['schemaVersion'] = self.schema_version
        data.update(self.extra)
        data['galleries'] = entries
        return data


@dataclass
class GalleryDetails:
    """
    Contents of {slug}/gallery-details.json.

    Attributes:
        slug: Gallery slug
        name: Display name
        date: Free-form date string
        description: Gallery description
        photos: Photo entries in display order
        extra: Unknown keys (e.g. schemaVersion), written back untouched
    """
    slug: str = ''
    name: str = ''
    date: str = ''
    description: str = ''
    photos: List[Photo] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    KNOWN_KEYS = ('slug', 'name', 'date', 'description', 'photos')

    @classmethod
    def from_dict(cls, data: Any) -> 'GalleryDetails':
        if not isinstance(data, dict):
            return cls()
        photos = data.get('photos')
        if not isinstance(photos, list):
            photos = []
        return cls(
            slug=_str(data.get('slug')),
            name=_str(data.get('name')),
            date=_str(data.get('date')),
            description=_str(data.get('description')),
            photos=[Photo.from_dict(p) for p in photos if isinstance(p, dict)],
            extra={k: v for k, v in data.items() if k not in cls.KNOWN_KEYS},
        )

    def to_dict(self, photos: Optional[List[dict]] = None) -> dict:
        data = dict(self.extra)
        data.update({
            'name': self.name,
            'slug': self.slug,
            'date': self.date,
            'description': self.description,
            'photos': photos if photos is not None else [p.to_dict() for p in self.photos],
        })
        return data

    @classmethod
    def load(cls, root: Path, slug: str) -> Optional['GalleryDetails']:
        """
        Load a gallery's details file.

        Returns:
            None if the gallery has no details file

        Raises:
            WorkspaceError: if the file exists but is not valid JSON
        """
        path = details_path(root, slug)
        if not path.is_file():
            return None
        return cls.from_dict(read_json(path))


def details_path(root: Path, slug: str) -> Path:
    """Path of a gallery's details file."""
    return Path(root) / slug / DETAILS_FILENAME


def read_json(path: Path) -> Any:
    """Read a JSON file, wrapping I/O and decode errors in WorkspaceError."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise WorkspaceError(f"Cannot read {path}: {e}") from e
