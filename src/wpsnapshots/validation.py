"""Input validators shared by the request model and the prompt layer.

Validators raise InputValidationError, which is also a ValueError so that
pydantic field validators can call them directly.
"""

from __future__ import annotations

import re
from typing import Final

from wpsnapshots.exceptions import InputValidationError

_SLUG_RE: Final = re.compile(r"^[a-z0-9\-_]+$", re.IGNORECASE)
_SLUG_STRIP_RE: Final = re.compile(r"[^a-zA-Z0-9\-_]")


def slug_validator(answer: str) -> str:
    """Validate a project slug and return it lowercased.

    Raises:
        InputValidationError: Slug is empty or has characters outside [A-Za-z0-9_-]
    """
    if not _SLUG_RE.match(answer or ""):
        raise InputValidationError(
            "A valid non-empty slug is required (letters, numbers, -, and _).",
            context={"slug": answer},
        )
    return answer.lower()


def sanitize_slug(value: str | None) -> str:
    """Strip characters not allowed in a slug (used for --slug values).

    Returns an empty string when nothing usable remains; the caller then
    falls back to asking for one.
    """
    if not value:
        return ""
    return _SLUG_STRIP_RE.sub("", value)


def not_empty_validator(answer: str) -> str:
    """Require a non-blank answer. Returns it unchanged."""
    if answer is None or answer.strip() == "":
        raise InputValidationError("A valid answer is required.")
    return answer
