"""Type aliases used throughout remote_drive."""

from __future__ import annotations

from collections.abc import Callable

ProgressCallback = Callable[[float], None]
FormData = dict[str, str]
Payload = dict[str, object]
