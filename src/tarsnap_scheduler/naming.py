"""
Archive naming.

Every archive created by tsm carries its kind and creation time in its name:

    nightly-2024-03-15        scheduled, day precision, subject to expiry
    adhoc-2024-03-15_1830     on demand, minute precision, never expired

The kind of an existing archive is decided by the ``adhoc-`` prefix alone;
anything else is treated as a nightly archive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict

from .errors import ArchiveNameError
from .logger import get_logger

log = get_logger(__name__)

ADHOC_PREFIX = "adhoc-"

# Unparseable nightly names map here; it sorts before any cutoff.
ZERO_INSTANT = datetime.min


class ArchiveKind(str, Enum):
    """Kind of archive, encoded as the name prefix."""
    NIGHTLY = "nightly"
    ADHOC = "adhoc"


@dataclass(frozen=True)
class ArchiveFormat:
    """A fixed textual encoding of an archive kind and instant."""
    kind: ArchiveKind
    template: str
    pattern: re.Pattern

    def format(self, instant: datetime) -> str:
        return instant.strftime(self.template)

    def parse(self, name: str) -> datetime:
        """Parse ``name`` back to an instant, raising ArchiveNameError on mismatch."""
        # strptime alone accepts unpadded fields such as "2024-3-1"
        if not self.pattern.fullmatch(name):
            raise ArchiveNameError(name, self.template)
        try:
            return datetime.strptime(name, self.template)
        except ValueError as e:
            raise ArchiveNameError(name, self.template) from e


FORMATS: Dict[ArchiveKind, ArchiveFormat] = {
    ArchiveKind.NIGHTLY: ArchiveFormat(
        kind=ArchiveKind.NIGHTLY,
        template="nightly-%Y-%m-%d",
        pattern=re.compile(r"nightly-\d{4}-\d{2}-\d{2}"),
    ),
    ArchiveKind.ADHOC: ArchiveFormat(
        kind=ArchiveKind.ADHOC,
        template="adhoc-%Y-%m-%d_%H%M",
        pattern=re.compile(r"adhoc-\d{4}-\d{2}-\d{2}_\d{4}"),
    ),
}


def archive_kind(name: str) -> ArchiveKind:
    if name.startswith(ADHOC_PREFIX):
        return ArchiveKind.ADHOC
    return ArchiveKind.NIGHTLY


def format_archive_name(kind: ArchiveKind, instant: datetime) -> str:
    return FORMATS[kind].format(instant)


def format_nightly(instant: datetime) -> str:
    return format_archive_name(ArchiveKind.NIGHTLY, instant)


def format_adhoc(instant: datetime) -> str:
    return format_archive_name(ArchiveKind.ADHOC, instant)


def parse_nightly(name: str, strict: bool = False) -> datetime:
    """
    Parse a nightly archive name into its (midnight) instant.

    Names that do not match ``nightly-YYYY-MM-DD`` exactly resolve to
    ZERO_INSTANT, which makes them expire under any month cutoff. With
    ``strict=True`` the ArchiveNameError is raised instead.
    """
    try:
        return FORMATS[ArchiveKind.NIGHTLY].parse(name)
    except ArchiveNameError:
        if strict:
            raise
        log.warning("Unrecognised archive name %r, treating it as the oldest possible archive", name)
        return ZERO_INSTANT
