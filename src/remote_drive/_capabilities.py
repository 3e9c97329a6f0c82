"""Drive operations a driver can declare, and read-only restriction of them."""

from __future__ import annotations

import enum

from remote_drive._errors import CapabilityNotSupported


class Capability(enum.Enum):
    """One drive operation. Values match the :class:`~remote_drive.Mount` method names."""

    LIST = "list"
    LINK = "link"
    MAKE_DIR = "make_dir"
    MOVE = "move"
    RENAME = "rename"
    COPY = "copy"
    REMOVE = "remove"
    PUT = "put"

    @property
    def mutating(self) -> bool:
        """Whether the operation changes anything on the remote side."""
        return self not in READ_CAPABILITIES


READ_CAPABILITIES = frozenset({Capability.LIST, Capability.LINK})


class CapabilitySet(frozenset[Capability]):
    """The operations a driver (or a mount over it) allows."""

    __slots__ = ()

    def supports(self, cap: Capability) -> bool:
        return cap in self

    def require(self, cap: Capability, *, driver: str = "") -> None:
        """Raise unless ``cap`` is in the set.

        :raises CapabilityNotSupported: If the capability is missing.
        """
        if cap not in self:
            raise CapabilityNotSupported(
                f"Capability '{cap.value}' is not supported",
                capability=cap.value,
                driver=driver or None,
            )

    def read_only(self) -> CapabilitySet:
        """The subset that leaves the remote side untouched."""
        return CapabilitySet(c for c in self if not c.mutating)

    def __repr__(self) -> str:
        names = sorted(c.name for c in self)
        return f"CapabilitySet({{{', '.join(names)}}})"
