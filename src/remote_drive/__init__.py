"""Cloud drive adapters behind one host-facing driver contract."""

from remote_drive._capabilities import Capability, CapabilitySet
from remote_drive._config import DriverConfig, MountProfile, QuqiOptions, RegistryConfig
from remote_drive._driver import Driver
from remote_drive._errors import (
    ApiError,
    AuthenticationFailed,
    BackendUnavailable,
    CapabilityNotSupported,
    DigestComputationFailed,
    DriveError,
    NotFound,
    PartTransferFailed,
    RequestFailed,
    WorkspaceNotFound,
)
from remote_drive._models import FileEntry, FileStream, Link
from remote_drive._mount import Mount
from remote_drive._registry import Registry, register_driver

__version__ = "0.1.0"

__all__ = [
    # Core
    "Mount",
    "Registry",
    "Driver",
    "register_driver",
    # Models
    "FileEntry",
    "FileStream",
    "Link",
    # Capabilities
    "Capability",
    "CapabilitySet",
    # Config
    "DriverConfig",
    "MountProfile",
    "QuqiOptions",
    "RegistryConfig",
    # Errors
    "DriveError",
    "NotFound",
    "WorkspaceNotFound",
    "AuthenticationFailed",
    "ApiError",
    "BackendUnavailable",
    "RequestFailed",
    "PartTransferFailed",
    "DigestComputationFailed",
    "CapabilityNotSupported",
    # Version
    "__version__",
]
