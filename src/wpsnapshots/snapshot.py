"""Snapshot assembly into the local cache.

Flow for one request:
1. Normalize the source path and allocate a fresh id + cache slot.
2. Database: mysqldump -> data.sql.tmp, gzip -> data.sql.gz.tmp, rename.
3. Files: tar -> files.tar.gz.tmp, rename.
4. Write meta.json and verify completeness for the declared contents.

Any failure removes the in-progress files and propagates; committed artifacts
of a failed run cannot make it look complete because the request's full
artifact set is required.
"""

from __future__ import annotations

import asyncio
import contextlib
import getpass
import gzip
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles
import aiofiles.os

from wpsnapshots import constants
from wpsnapshots._logging import get_logger
from wpsnapshots.cache_manager import CacheDirectoryManager
from wpsnapshots.commands import build_archive_command
from wpsnapshots.exceptions import CacheDirectoryError, InputValidationError
from wpsnapshots.identifiers import generate_snapshot_id
from wpsnapshots.models import CacheEntry, SnapshotMeta
from wpsnapshots.mysql import MysqlConnection, build_export_command, list_tables
from wpsnapshots.paths import normalize_path
from wpsnapshots.settings import Settings
from wpsnapshots.subprocess_utils import run_command

if TYPE_CHECKING:
    from wpsnapshots.models import SnapshotRequest
    from wpsnapshots.mysql import TableSource

logger = get_logger(__name__)

_COPY_CHUNK = 1 << 20  # 1MB


def request_connection(request: SnapshotRequest) -> MysqlConnection:
    """MySQL credentials carried by a request."""
    return MysqlConnection(
        host=request.db_host,
        user=request.db_user or "",
        password=request.db_password.get_secret_value(),
        database=request.db_name,
    )


def _gzip_file(source: Path, destination: Path) -> None:
    with source.open("rb") as src, gzip.open(destination, "wb") as dst:
        shutil.copyfileobj(src, dst, _COPY_CHUNK)


async def export_database(
    request: SnapshotRequest,
    snapshot_id: str,
    *,
    cache: CacheDirectoryManager,
    settings: Settings,
    table_source: TableSource | None = None,
) -> Path:
    """Dump the request's database into ``{slot}/data.sql.gz``.

    When a table source is given and the request has a table prefix, only
    tables with that prefix are exported.
    """
    tables: list[str] = []
    if table_source is not None and request.table_prefix:
        tables = await list_tables(table_source, request.table_prefix)
        if not tables:
            raise InputValidationError(
                f"No tables with prefix {request.table_prefix!r} found in {request.db_name}",
                context={"table_prefix": request.table_prefix, "database": request.db_name},
            )

    sql_tmp = cache.tmp_artifact_path(snapshot_id, "data.sql")
    gz_tmp = cache.tmp_artifact_path(snapshot_id, constants.DB_ARTIFACT)

    spec = build_export_command(
        request.db_host,
        request_connection(request),
        output_path=sql_tmp,
        tables=tables,
        mysqldump_bin=settings.mysqldump_bin,
    )
    logger.info("Exporting database", extra={"snapshot_id": snapshot_id, "tables": len(tables) or "all"})
    await run_command(spec, timeout=settings.command_timeout_seconds)

    await asyncio.to_thread(_gzip_file, sql_tmp, gz_tmp)
    await aiofiles.os.remove(sql_tmp)
    return cache.commit_artifact(gz_tmp, cache.artifact_path(snapshot_id, constants.DB_ARTIFACT))


async def archive_files(
    source: str,
    snapshot_id: str,
    *,
    exclude: frozenset[str],
    cache: CacheDirectoryManager,
    settings: Settings,
) -> Path:
    """Archive the site file tree into ``{slot}/files.tar.gz``."""
    tar_tmp = cache.tmp_artifact_path(snapshot_id, constants.FILES_ARTIFACT)
    spec = build_archive_command(settings.tar_bin, Path(source), tar_tmp, exclude)
    logger.info("Archiving files", extra={"snapshot_id": snapshot_id, "source": source, "exclude": sorted(exclude)})
    await run_command(spec, timeout=settings.command_timeout_seconds)
    return cache.commit_artifact(tar_tmp, cache.artifact_path(snapshot_id, constants.FILES_ARTIFACT))


def _current_user() -> str | None:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return None


async def write_meta(cache: CacheDirectoryManager, meta: SnapshotMeta) -> Path:
    """Write meta.json for a snapshot (tmp + rename)."""
    meta_path = cache.meta_path(meta.id)
    tmp_path = meta_path.parent / f"{meta_path.name}{constants.TMP_SUFFIX}"
    async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
        await f.write(meta.model_dump_json(indent=2))
    await aiofiles.os.replace(tmp_path, meta_path)
    return meta_path


def load_meta(cache: CacheDirectoryManager, snapshot_id: str) -> SnapshotMeta | None:
    """Read meta.json for a cached snapshot, or None if absent/unreadable."""
    try:
        return SnapshotMeta.model_validate_json(cache.meta_path(snapshot_id).read_bytes())
    except (OSError, ValueError):
        return None


async def create_snapshot(
    request: SnapshotRequest,
    *,
    settings: Settings | None = None,
    cache: CacheDirectoryManager | None = None,
    table_source: TableSource | None = None,
) -> CacheEntry:
    """Assemble a snapshot for ``request`` into the local cache.

    Args:
        request: Validated snapshot request
        settings: Runtime settings (tool paths, timeouts, cache root)
        cache: Cache manager (defaults to one rooted at settings.cache_dir)
        table_source: Table enumeration for prefix-restricted dumps

    Returns:
        The complete CacheEntry

    Raises:
        CacheDirectoryError: Cache root/slot unusable, or an artifact or
            the metadata could not be written (disk full, permissions)
        CommandError: An export tool failed to start, failed or timed out
        InputValidationError: No tables match the request's prefix
    """
    from wpsnapshots import __version__  # noqa: PLC0415

    settings = settings or Settings()
    cache = cache or CacheDirectoryManager(settings.cache_dir)

    source = normalize_path(request.path)
    snapshot_id = generate_snapshot_id()
    cache.ensure_slot(snapshot_id)
    entry = cache.entry(snapshot_id, contains_db=request.contains_db, contains_files=request.contains_files)
    logger.info(
        "Creating snapshot",
        extra={"snapshot_id": snapshot_id, "project": request.project, "artifacts": sorted(entry.expected_artifacts)},
    )

    try:
        if request.contains_db:
            await export_database(request, snapshot_id, cache=cache, settings=settings, table_source=table_source)
        if request.contains_files:
            await archive_files(source, snapshot_id, exclude=request.exclude, cache=cache, settings=settings)

        meta = SnapshotMeta(
            id=snapshot_id,
            project=request.project,
            description=request.description,
            repository=request.repository,
            author=_current_user(),
            created=datetime.now(UTC),
            contains_db=request.contains_db,
            contains_files=request.contains_files,
            table_prefix=request.table_prefix,
            exclude=sorted(request.exclude),
            small=request.small,
            no_scrub=request.no_scrub,
            wpsnapshots_version=__version__,
            artifact_sizes={path.name: path.stat().st_size for path in entry.artifact_paths},
        )
        await write_meta(cache, meta)
    except OSError as e:
        with contextlib.suppress(OSError):
            cache.discard_partial(snapshot_id)
        raise CacheDirectoryError(
            f"Cannot write snapshot {snapshot_id}: {e.strerror or e}",
            context={"snapshot_id": snapshot_id, "directory": str(entry.directory)},
        ) from e
    except BaseException:
        with contextlib.suppress(OSError):
            cache.discard_partial(snapshot_id)
        raise

    if not cache.is_complete(snapshot_id, entry.expected_artifacts):
        raise CacheDirectoryError(
            f"Snapshot {snapshot_id} is incomplete after export",
            context={"snapshot_id": snapshot_id, "directory": str(entry.directory)},
        )

    logger.info("Snapshot created", extra={"snapshot_id": snapshot_id, "directory": str(entry.directory)})
    return entry
