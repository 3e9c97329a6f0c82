"""Driver implementations."""

from remote_drive.drivers._quqi import QuqiDriver

__all__ = ["QuqiDriver"]
