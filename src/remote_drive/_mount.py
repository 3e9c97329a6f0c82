"""Mount: the host-facing view of a driver rooted at one folder."""

from __future__ import annotations

from typing import TYPE_CHECKING

from remote_drive._capabilities import Capability
from remote_drive._models import FileEntry, from_epoch

if TYPE_CHECKING:
    from types import TracebackType

    from remote_drive._driver import Driver
    from remote_drive._models import FileStream, Link
    from remote_drive._types import ProgressCallback


class Mount:
    """A logical drive scoped to a root folder.

    Every operation checks the driver's declared capabilities before
    delegating. Passing ``None`` where a folder is expected means the root.

    :param driver: The driver to delegate I/O to.
    :param root_id: Node id of the root folder. Defaults to the driver's root.
    :param read_only: Allow only listing and link resolution.
    """

    def __init__(self, driver: Driver, root_id: str = "", *, read_only: bool = False) -> None:
        self._driver = driver
        self._root_id = root_id or driver.root_id
        self._capabilities = driver.capabilities.read_only() if read_only else driver.capabilities

    def __repr__(self) -> str:
        return f"Mount(driver={self._driver.name!r}, root_id={self._root_id!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mount):
            return self._driver is other._driver and self._root_id == other._root_id
        return NotImplemented

    def __hash__(self) -> int:
        return hash((id(self._driver), self._root_id))

    def close(self) -> None:
        """Close the underlying driver, releasing any held resources."""
        self._driver.close()

    def __enter__(self) -> Mount:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def root(self) -> FileEntry:
        """Folder entry standing for the mount root."""
        epoch = from_epoch(0)
        return FileEntry(id=self._root_id, name="", modified_at=epoch, created_at=epoch, is_folder=True)

    def _folder(self, folder: FileEntry | None) -> FileEntry:
        return self.root if folder is None else folder

    def _require(self, capability: Capability) -> None:
        self._capabilities.require(capability, driver=self._driver.name)

    @property
    def read_only(self) -> bool:
        return not any(c.mutating for c in self._capabilities)

    def supports(self, capability: Capability) -> bool:
        """Check whether this mount allows a capability."""
        return capability in self._capabilities

    def init(self) -> None:
        """Authenticate the driver now instead of on first use."""
        self._driver.init()

    def list(self, folder: FileEntry | None = None) -> list[FileEntry]:
        """List the children of ``folder`` (the root by default)."""
        self._require(Capability.LIST)
        return self._driver.list(self._folder(folder))

    def link(self, file: FileEntry) -> Link:
        """Resolve a download link for ``file``."""
        self._require(Capability.LINK)
        return self._driver.link(file)

    def make_dir(self, parent: FileEntry | None, name: str) -> FileEntry:
        """Create folder ``name`` inside ``parent``.

        :raises ValueError: If ``name`` is empty.
        """
        if not name:
            raise ValueError("Folder name must not be empty")
        self._require(Capability.MAKE_DIR)
        return self._driver.make_dir(self._folder(parent), name)

    def move(self, entry: FileEntry, dst_folder: FileEntry | None) -> FileEntry:
        self._require(Capability.MOVE)
        return self._driver.move(entry, self._folder(dst_folder))

    def rename(self, entry: FileEntry, new_name: str) -> FileEntry:
        """Rename ``entry``.

        :raises ValueError: If ``new_name`` is empty.
        """
        if not new_name:
            raise ValueError("New name must not be empty")
        self._require(Capability.RENAME)
        return self._driver.rename(entry, new_name)

    def copy(self, entry: FileEntry, dst_folder: FileEntry | None) -> FileEntry | None:
        """Copy ``entry``. May return ``None`` if the driver cannot describe the copy."""
        self._require(Capability.COPY)
        return self._driver.copy(entry, self._folder(dst_folder))

    def remove(self, entry: FileEntry) -> None:
        """Delete ``entry``.

        :raises ValueError: If ``entry`` is the mount root.
        """
        if entry.id == self._root_id:
            raise ValueError("Cannot remove the mount root")
        self._require(Capability.REMOVE)
        self._driver.remove(entry)

    def put(
        self, parent: FileEntry | None, stream: FileStream, progress: ProgressCallback | None = None
    ) -> FileEntry:
        """Upload ``stream`` into ``parent``."""
        self._require(Capability.PUT)
        return self._driver.put(self._folder(parent), stream, progress)
