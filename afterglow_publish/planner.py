"""
Planner - Diffs local artifacts against the remote inventory.

Comparison is by content: a local MD5 against the object's ETag. Multipart
ETags ('<hash>-<parts>') are not an MD5 of the content, so such objects are
always re-uploaded.
"""

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .s3_client import S3Client
from .sync_file import SyncFile, fingerprint


MULTIPART_MARKER = '-'

MANAGED_PREFIXES = ('galleries/', 'afterglow/')
MANAGED_KEYS = ('index.html', 'favicon.ico', 'favicon.png')


def managed_areas(root: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """(prefixes, exact keys) a publish under `root` is allowed to delete."""
    return (
        tuple(f"{root}{p}" for p in MANAGED_PREFIXES),
        tuple(f"{root}{k}" for k in MANAGED_KEYS),
    )


def is_managed_key(key: str, root: str) -> bool:
    """True if `key` lies in an area this publisher owns and may delete."""
    prefixes, exact = managed_areas(root)
    return key in exact or key.startswith(prefixes)


def is_unchanged(local_digest: str, etag: Optional[str]) -> bool:
    """True if a remote ETag proves the object already holds the local bytes."""
    if not etag or MULTIPART_MARKER in etag:
        return False
    return etag == local_digest


@dataclass(frozen=True)
class PublishPlan:
    """
    Point-in-time diff between the workspace and the bucket.

    Attributes:
        plan_id: Opaque identifier (uuid4)
        to_upload: Files to upload, sorted by key
        to_delete: Remote keys to delete, sorted
        unchanged_count: Files already up to date
        total_files: Uploads + deletes + unchanged
    """
    plan_id: str
    to_upload: Tuple[SyncFile, ...] = field(default_factory=tuple)
    to_delete: Tuple[str, ...] = field(default_factory=tuple)
    unchanged_count: int = 0
    total_files: int = 0

    @property
    def upload_bytes(self) -> int:
        return sum(f.size_bytes for f in self.to_upload)

    @property
    def is_empty(self) -> bool:
        """True if there is nothing to upload or delete."""
        return not self.to_upload and not self.to_delete

    def to_dict(self) -> dict:
        return {
            'planId': self.plan_id,
            'toUpload': [f.to_dict() for f in self.to_upload],
            'toDelete': list(self.to_delete),
            'unchanged': self.unchanged_count,
            'totalFiles': self.total_files,
        }


def classify(
    local_artifacts: Dict[str, Path],
    remote_objects: Dict[str, str],
    root: str = '',
    plan_id: Optional[str] = None,
    logger: Optional[logging.Logger] = None
) -> PublishPlan:
    """
    Classify every artifact as upload or unchanged and collect orphaned keys.

    Args:
        local_artifacts: Remote key -> local file
        remote_objects: Remote key -> ETag
        root: Normalized remote root prefix
        plan_id: Identifier to use (a fresh uuid4 by default)

    Returns:
        PublishPlan; deletes are remote keys with no local artifact that lie
        in a managed area
    """
    logger = logger or logging.getLogger(__name__)
    to_upload: List[SyncFile] = []
    unchanged = 0

    for key in sorted(local_artifacts):
        path = local_artifacts[key]
        if is_unchanged(fingerprint(path), remote_objects.get(key)):
            unchanged += 1
            continue
        to_upload.append(SyncFile.from_path(path, key))

    to_delete = []
    for key in sorted(remote_objects):
        if key in local_artifacts:
            continue
        if not is_managed_key(key, root):
            logger.debug(f"Leaving unmanaged remote key alone: {key}")
            continue
        to_delete.append(key)

    return PublishPlan(
        plan_id=plan_id or str(uuid.uuid4()),
        to_upload=tuple(to_upload),
        to_delete=tuple(to_delete),
        unchanged_count=unchanged,
        total_files=len(to_upload) + len(to_delete) + unchanged,
    )


class PlanBuilder:
    """
    Lists the remote inventory and diffs it against the local artifacts.
    """

    def __init__(self, s3_client: S3Client, logger: Optional[logging.Logger] = None):
        self.s3 = s3_client
        self.logger = logger or logging.getLogger(__name__)

    def build(self, local_artifacts: Dict[str, Path], root: str = '') -> PublishPlan:
        """
        Build a plan for publishing `local_artifacts` under `root`.

        Raises:
            RemoteError: if the listing fails
            WorkspaceError: if a local artifact cannot be read
        """
        remote_objects = self.s3.list_fingerprints(root)
        plan = classify(local_artifacts, remote_objects, root, logger=self.logger)

        self.logger.info(
            f"Plan {plan.plan_id}: {len(plan.to_upload)} to upload, "
            f"{len(plan.to_delete)} to delete, {plan.unchanged_count} unchanged"
        )
        return plan
