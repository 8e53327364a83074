"""Snapshot identifiers.

Ids name cache directories and remote objects, so they must be unique across
every snapshot any user ever creates. 128 bits from the OS CSPRNG keeps the
collision probability per generation below 2**-128 without coordination.
"""

from __future__ import annotations

import re
import secrets
from typing import Final

from wpsnapshots import constants

SNAPSHOT_ID_LENGTH: Final[int] = constants.SNAPSHOT_ID_BYTES * 2
_SNAPSHOT_ID_RE: Final = re.compile(rf"[0-9a-f]{{{SNAPSHOT_ID_LENGTH}}}")


def generate_snapshot_id() -> str:
    """Return a new 32-character lowercase hex snapshot id."""
    return secrets.token_hex(constants.SNAPSHOT_ID_BYTES)


def is_valid_snapshot_id(value: str) -> bool:
    """True if value has the snapshot id format (safe to use as a directory name)."""
    return bool(_SNAPSHOT_ID_RE.fullmatch(value))
