"""
SyncFile - One candidate upload, plus content type and fingerprint helpers.
"""

import hashlib
from dataclasses import dataclass
from pathlib import Path

from .errors import WorkspaceError


CONTENT_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.avif': 'image/avif',
    '.bmp': 'image/bmp',
    '.tif': 'image/tiff',
    '.tiff': 'image/tiff',
    '.ico': 'image/x-icon',
    '.svg': 'image/svg+xml',
    '.json': 'application/json',
    '.html': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
}
DEFAULT_CONTENT_TYPE = 'application/octet-stream'

CHUNK_SIZE = 64 * 1024


def content_type_for(path) -> str:
    """Content type for a file name, by extension (case-insensitive)."""
    return CONTENT_TYPES.get(Path(path).suffix.lower(), DEFAULT_CONTENT_TYPE)


def fingerprint(path: Path) -> str:
    """
    Hex MD5 of a file's bytes, the same digest S3 reports as a single-part ETag.

    Raises:
        WorkspaceError: if the file cannot be read
    """
    digest = hashlib.md5()
    try:
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
                digest.update(chunk)
    except OSError as e:
        raise WorkspaceError(f"Failed to read {path}: {e}") from e
    return digest.hexdigest()


@dataclass(frozen=True)
class SyncFile:
    """
    A local file scheduled for upload.

    Attributes:
        local_path: File to read
        remote_key: Destination key
        size_bytes: File size at plan time
        content_type: Content-Type sent with the upload
    """
    local_path: str
    remote_key: str
    size_bytes: int
    content_type: str

    @classmethod
    def from_path(cls, path: Path, remote_key: str) -> 'SyncFile':
        try:
            size = Path(path).stat().st_size
        except OSError as e:
            raise WorkspaceError(f"Failed to stat {path}: {e}") from e
        return cls(
            local_path=str(path),
            remote_key=remote_key,
            size_bytes=size,
            content_type=content_type_for(path),
        )

    def to_dict(self) -> dict:
        return {
            'localPath': self.local_path,
            's3Key': self.remote_key,
            'sizeBytes': self.size_bytes,
            'contentType': self.content_type,
        }
