"""Normalized error hierarchy for remote_drive."""

from __future__ import annotations

from typing import Optional


class DriveError(Exception):
    """Base class for all remote_drive errors.

    :param message: Human-readable error description.
    :param node_id: The remote node involved in the error, if any.
    :param driver: The driver name involved, if any.
    """

    def __init__(self, message: str = "", *, node_id: Optional[str] = None, driver: Optional[str] = None) -> None:
        self.node_id = node_id
        self.driver = driver
        super().__init__(message)

    def _context(self) -> list[str]:
        parts = []
        if self.node_id is not None:
            parts.append(f"node_id={self.node_id!r}")
        if self.driver is not None:
            parts.append(f"driver={self.driver!r}")
        return parts

    def __str__(self) -> str:
        message = super().__str__()
        parts = ([message] if message else []) + self._context()
        return " | ".join(parts)

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(super().__str__()), *self._context()]
        return f"{cls}({', '.join(args)})"


class NotFound(DriveError):
    """Raised when a node or resource does not exist."""


class WorkspaceNotFound(NotFound):
    """Raised when the account has no private workspace to operate in."""


class AuthenticationFailed(DriveError):
    """Raised when logging in or validating the session cookie fails."""


class BackendUnavailable(DriveError):
    """Raised when the remote service cannot be reached."""


class ApiError(DriveError):
    """Raised when the service answers with a failure envelope.

    :param code: The envelope status code (or HTTP status for transport-level rejections).
    """

    def __init__(
        self,
        message: str = "",
        *,
        code: int = 0,
        node_id: Optional[str] = None,
        driver: Optional[str] = None,
    ) -> None:
        self.code = code
        super().__init__(message, node_id=node_id, driver=driver)

    def _context(self) -> list[str]:
        return [f"code={self.code}", *super()._context()]


class RequestFailed(DriveError):
    """Raised when one step of a driver operation fails.

    :param step: Name of the failed step (e.g. ``"init"``, ``"finish"``, ``"rename"``).
    :param cause: The underlying error.
    """

    def __init__(
        self,
        message: str = "",
        *,
        step: str = "",
        cause: Optional[BaseException] = None,
        node_id: Optional[str] = None,
        driver: Optional[str] = None,
    ) -> None:
        self.step = step
        self.cause = cause
        super().__init__(message, node_id=node_id, driver=driver)

    def _context(self) -> list[str]:
        parts = [f"step={self.step!r}"] if self.step else []
        return [*parts, *super()._context()]


class PartTransferFailed(DriveError):
    """Raised when uploading one part of a multipart upload fails.

    :param part_number: 1-based number of the failed part.
    :param cause: The underlying error.
    """

    def __init__(
        self,
        message: str = "",
        *,
        part_number: int = 0,
        cause: Optional[BaseException] = None,
        node_id: Optional[str] = None,
        driver: Optional[str] = None,
    ) -> None:
        self.part_number = part_number
        self.cause = cause
        super().__init__(message, node_id=node_id, driver=driver)

    def _context(self) -> list[str]:
        return [f"part_number={self.part_number}", *super()._context()]


class DigestComputationFailed(DriveError):
    """Raised when the upload source cannot be read in full for digesting."""


class CapabilityNotSupported(DriveError):
    """Raised when an operation requires an unsupported capability.

    :param capability: The name of the unsupported capability.
    """

    def __init__(
        self,
        message: str = "",
        *,
        node_id: Optional[str] = None,
        driver: Optional[str] = None,
        capability: str = "",
    ) -> None:
        self.capability = capability
        super().__init__(message, node_id=node_id, driver=driver)

    def _context(self) -> list[str]:
        parts = [f"capability={self.capability!r}"] if self.capability else []
        return [*super()._context(), *parts]
