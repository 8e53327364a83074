"""wpsnapshots: package WordPress database and files into cached snapshots.

Quick Start:
    ```python
    import asyncio

    from wpsnapshots import SnapshotRequest, create_snapshot

    request = SnapshotRequest(
        project="my-site",
        description="Local environment",
        path="~/sites/my-site",
        db_host="127.0.0.1:3306",
        db_name="wordpress",
        db_user="wp",
        db_password="secret",
    )
    entry = asyncio.run(create_snapshot(request))
    print(entry.id, entry.directory)
    ```

Cache layout:
    ~/.wpsnapshots/{id}/data.sql.gz
    ~/.wpsnapshots/{id}/files.tar.gz
    ~/.wpsnapshots/{id}/meta.json

Requirements:
    - mysqldump / mysql client tools and tar on PATH
    - Python 3.12+
"""

from wpsnapshots.cache_manager import CacheDirectoryManager
from wpsnapshots.exceptions import (
    CacheDirectoryError,
    CommandError,
    CommandExitError,
    CommandSpawnError,
    CommandTimeoutError,
    ConfigWriteError,
    DownloadUrlLookupError,
    InputValidationError,
    SnapshotError,
)
from wpsnapshots.models import CacheEntry, HostSpec, SnapshotMeta, SnapshotRequest
from wpsnapshots.settings import Settings
from wpsnapshots.snapshot import create_snapshot

__all__ = [
    "CacheDirectoryError",
    "CacheDirectoryManager",
    "CacheEntry",
    "CommandError",
    "CommandExitError",
    "CommandSpawnError",
    "CommandTimeoutError",
    "ConfigWriteError",
    "DownloadUrlLookupError",
    "HostSpec",
    "InputValidationError",
    "Settings",
    "SnapshotError",
    "SnapshotMeta",
    "SnapshotRequest",
    "create_snapshot",
]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wpsnapshots")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
