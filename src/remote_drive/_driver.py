"""Driver abstract base class: the contract between a cloud drive and the host."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from remote_drive._capabilities import CapabilitySet
    from remote_drive._models import FileEntry, FileStream, Link
    from remote_drive._types import ProgressCallback


class Driver(abc.ABC):
    """Abstract base class for all cloud drive drivers.

    Nodes are addressed by the opaque ids the remote service hands out, carried
    around in :class:`FileEntry` records. Driver-native exceptions must never
    leak; they must be mapped to ``remote_drive`` errors.
    """

    @classmethod
    def from_options(cls, options: Mapping[str, object]) -> Driver:
        """Build a driver from configuration options.

        :raises ValueError: If the options do not fit the constructor.
        """
        try:
            return cls(**options)
        except TypeError as exc:
            raise ValueError(f"Invalid options for {cls.__name__}: {exc}") from exc

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique identifier for this driver type (e.g. ``'quqi'``)."""

    @property
    @abc.abstractmethod
    def capabilities(self) -> CapabilitySet:
        """Declared capabilities of this driver."""

    @property
    @abc.abstractmethod
    def root_id(self) -> str:
        """Node id of the folder the driver treats as its root."""

    @abc.abstractmethod
    def init(self) -> None:
        """Authenticate and resolve everything later calls depend on.

        :raises AuthenticationFailed: If the credentials are rejected.
        """

    @abc.abstractmethod
    def list(self, folder: FileEntry) -> list[FileEntry]:
        """List the immediate children of ``folder``. An empty folder yields ``[]``."""

    @abc.abstractmethod
    def link(self, file: FileEntry) -> Link:
        """Resolve a direct download link for ``file``."""

    @abc.abstractmethod
    def make_dir(self, parent: FileEntry, name: str) -> FileEntry:
        """Create a folder named ``name`` inside ``parent``."""

    @abc.abstractmethod
    def move(self, entry: FileEntry, dst_folder: FileEntry) -> FileEntry:
        """Move ``entry`` into ``dst_folder`` and return its new record."""

    @abc.abstractmethod
    def rename(self, entry: FileEntry, new_name: str) -> FileEntry:
        """Rename ``entry`` and return its new record."""

    @abc.abstractmethod
    def copy(self, entry: FileEntry, dst_folder: FileEntry) -> FileEntry | None:
        """Copy ``entry`` into ``dst_folder``.

        Returns ``None`` when the service does not describe the created node.
        """

    @abc.abstractmethod
    def remove(self, entry: FileEntry) -> None:
        """Delete ``entry``."""

    @abc.abstractmethod
    def put(self, parent: FileEntry, stream: FileStream, progress: ProgressCallback | None = None) -> FileEntry:
        """Upload ``stream`` into ``parent`` and return the created file."""

    def close(self) -> None:  # noqa: B027
        """Release resources. Default is a no-op."""
