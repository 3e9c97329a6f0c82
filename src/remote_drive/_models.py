"""Immutable metadata models exchanged between drivers and the host."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import BinaryIO


def from_epoch(seconds: int | float | None) -> datetime:
    """Convert epoch seconds reported by a remote service to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds or 0, tz=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclasses.dataclass(frozen=True, eq=False)
class FileEntry:
    """Immutable snapshot of a remote file or folder.

    :param id: Opaque remote node identifier. Stable across rename and move.
    :param name: Display name.
    :param size: Size in bytes (``0`` for folders).
    :param modified_at: Last modification time.
    :param created_at: Creation time.
    :param is_folder: ``True`` for directories.
    """

    id: str
    name: str
    size: int = 0
    modified_at: datetime = dataclasses.field(default_factory=utcnow)
    created_at: datetime = dataclasses.field(default_factory=utcnow)
    is_folder: bool = False

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FileEntry):
            return self.id == other.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.id)


@dataclasses.dataclass(frozen=True)
class FileStream:
    """Descriptor of a local file handed to a driver for upload.

    :param name: Target file name.
    :param size: Declared size in bytes (non-negative).
    :param content: Binary file object holding exactly ``size`` bytes.
    :param modified_at: Modification time to report on the created entry.
    :param created_at: Creation time to report on the created entry.
    """

    name: str
    size: int
    content: BinaryIO
    modified_at: datetime = dataclasses.field(default_factory=utcnow)
    created_at: datetime = dataclasses.field(default_factory=utcnow)


@dataclasses.dataclass(frozen=True)
class Link:
    """A direct download location for a remote file.

    :param url: The download URL.
    :param headers: HTTP headers the host must send when fetching ``url``.
    """

    url: str
    headers: dict[str, str] = dataclasses.field(default_factory=dict)
