"""Local snapshot cache.

Layout:
    {root}/                      (default ~/.wpsnapshots/)
    {root}/{id}/data.sql.gz      database dump (when the snapshot has a db)
    {root}/{id}/files.tar.gz     file tree (when the snapshot has files)
    {root}/{id}/meta.json        metadata sidecar

Completeness is decided purely by artifact presence. Artifacts are written as
``{name}.tmp`` and renamed into place only once fully written, so a crashed
or failed export never leaves an entry that reports as cached.

Retention is someone else's job: this module never deletes an entry.
"""

from __future__ import annotations

import contextlib
import os
from typing import TYPE_CHECKING

from wpsnapshots import constants
from wpsnapshots._logging import get_logger
from wpsnapshots.exceptions import CacheDirectoryError
from wpsnapshots.models import CacheEntry, expected_artifacts

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = get_logger(__name__)

ALL_ARTIFACTS: frozenset[str] = frozenset({constants.DB_ARTIFACT, constants.FILES_ARTIFACT})


def _is_safe_id(snapshot_id: str) -> bool:
    """Reject ids that would escape the cache root when joined as a path."""
    return bool(snapshot_id) and snapshot_id not in {".", ".."} and not any(sep in snapshot_id for sep in "/\\\0")


class CacheDirectoryManager:
    """Creates and inspects snapshot slots under a cache root.

    Provides:
    - Root and per-snapshot directory creation with owner-only permissions
    - Writability checks (fail early instead of mid-export)
    - Completeness checks driven by the artifacts a snapshot declares
    - Atomic commit of finished artifacts (tmp -> final rename)
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def ensure_root(self) -> Path:
        """Create the cache root if absent and verify it is writable.

        Raises:
            CacheDirectoryError: Directory could not be created or is not writable
        """
        self._ensure_dir(self.root)
        return self.root

    def ensure_slot(self, snapshot_id: str) -> Path:
        """Create ``{root}/{id}/`` (and the root) if absent.

        Raises:
            CacheDirectoryError: Invalid id, or directory not creatable/writable
        """
        if not _is_safe_id(snapshot_id):
            raise CacheDirectoryError(f"Invalid snapshot id: {snapshot_id!r}", context={"id": snapshot_id})
        self.ensure_root()
        slot = self.slot_path(snapshot_id)
        self._ensure_dir(slot)
        return slot

    def _ensure_dir(self, path: Path) -> None:
        try:
            path.mkdir(mode=constants.CACHE_DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise CacheDirectoryError(
                f"Cannot create cache directory {path}: {e.strerror or e}",
                context={"path": str(path), "errno": e.errno},
            ) from e

        if not path.is_dir():
            raise CacheDirectoryError(f"Cache path is not a directory: {path}", context={"path": str(path)})
        if not os.access(path, os.W_OK):
            raise CacheDirectoryError(f"Cache directory is not writable: {path}", context={"path": str(path)})

    def slot_path(self, snapshot_id: str) -> Path:
        return self.root / snapshot_id

    def artifact_path(self, snapshot_id: str, name: str) -> Path:
        return self.slot_path(snapshot_id) / name

    def tmp_artifact_path(self, snapshot_id: str, name: str) -> Path:
        """In-progress location for an artifact (never counted as cached)."""
        return self.slot_path(snapshot_id) / f"{name}{constants.TMP_SUFFIX}"

    def meta_path(self, snapshot_id: str) -> Path:
        return self.slot_path(snapshot_id) / constants.META_FILE

    def is_complete(self, snapshot_id: str, artifacts: Iterable[str] | None = None) -> bool:
        """True iff every expected artifact exists in the slot.

        Never raises: a missing slot or malformed id is simply not cached.

        Args:
            snapshot_id: Snapshot id
            artifacts: Artifact names the snapshot declares. Defaults to
                both the database dump and the file archive.
        """
        if not _is_safe_id(snapshot_id):
            return False
        names = ALL_ARTIFACTS if artifacts is None else frozenset(artifacts)
        slot = self.slot_path(snapshot_id)
        try:
            return all((slot / name).is_file() for name in names)
        except OSError:
            return False

    def entry(self, snapshot_id: str, *, contains_db: bool, contains_files: bool) -> CacheEntry:
        """Describe the cache entry for a snapshot with the given contents."""
        return CacheEntry(
            id=snapshot_id,
            directory=self.slot_path(snapshot_id),
            expected_artifacts=expected_artifacts(contains_db=contains_db, contains_files=contains_files),
        )

    def commit_artifact(self, tmp_path: Path, final_path: Path) -> Path:
        """Atomically move a fully written artifact into place."""
        os.replace(tmp_path, final_path)
        logger.debug("Artifact committed", extra={"path": str(final_path)})
        return final_path

    def discard_partial(self, snapshot_id: str) -> None:
        """Remove leftover in-progress artifacts from a failed assembly.

        Only ``*.tmp`` files are touched; committed artifacts stay.
        """
        slot = self.slot_path(snapshot_id)
        if not slot.is_dir():
            return
        for tmp in slot.glob(f"*{constants.TMP_SUFFIX}"):
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            logger.debug("Removed partial artifact", extra={"path": str(tmp)})

    def list_ids(self) -> list[str]:
        """Ids of all slots under the root (complete or not), sorted."""
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())
