"""Quqi (quqi.com) cloud drive driver."""

from __future__ import annotations

import dataclasses
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from remote_drive._capabilities import Capability, CapabilitySet
from remote_drive._config import QuqiOptions
from remote_drive._driver import Driver
from remote_drive._errors import AuthenticationFailed, DriveError, NotFound, RequestFailed
from remote_drive._models import FileEntry, Link, from_epoch, utcnow
from remote_drive.drivers._quqi_api import ORIGIN, QuqiClient, Session, SessionProvider
from remote_drive.drivers._quqi_upload import STORAGE_ENDPOINT_URL, STORAGE_REGION, UploadOrchestrator

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from remote_drive._models import FileStream
    from remote_drive._types import FormData, ProgressCallback
    from remote_drive.drivers._quqi_api import Envelope

log = logging.getLogger(__name__)

_QUQI_CAPABILITIES = CapabilitySet(set(Capability))


class QuqiDriver(Driver):
    """Driver for the Quqi cloud drive.

    Operates on the account's private workspace. Construction makes no
    network calls; the session is opened by :meth:`init` or lazily on first use.

    :param phone: Account phone number (used with ``password``).
    :param password: Account password.
    :param cookie: Session cookie; takes precedence over phone/password.
    :param root_id: Node id of the root folder (``"0"`` is the workspace root).
    :param timeout: HTTP timeout in seconds.
    :param client_options: Additional options passed to ``httpx.Client``.
    :param storage_endpoint_url: Object storage endpoint for upload parts.
    :param storage_region: Object storage region.
    :param storage_options: Additional options passed to ``botocore.config.Config``.
    """

    def __init__(
        self,
        phone: str | None = None,
        password: str | None = None,
        cookie: str | None = None,
        *,
        root_id: str = "0",
        timeout: float = 30.0,
        client_options: dict[str, Any] | None = None,
        storage_endpoint_url: str = STORAGE_ENDPOINT_URL,
        storage_region: str = STORAGE_REGION,
        storage_options: dict[str, Any] | None = None,
    ) -> None:
        if not cookie and not (phone and password):
            raise ValueError("either cookie or both phone and password must be provided")
        self._root_id = root_id
        self._client = QuqiClient(timeout=timeout, client_options=client_options)
        self._sessions = SessionProvider(self._client, phone=phone, password=password, cookie=cookie)
        self._uploader = UploadOrchestrator(
            self._client,
            storage_endpoint_url=storage_endpoint_url,
            storage_region=storage_region,
            storage_options=storage_options,
        )
        self._session_instance: Session | None = None

    @classmethod
    def from_options(cls, options: Mapping[str, object]) -> QuqiDriver:
        return cls(**QuqiOptions.from_options(options).as_kwargs())

    @property
    def name(self) -> str:
        return "quqi"

    @property
    def capabilities(self) -> CapabilitySet:
        return _QUQI_CAPABILITIES

    @property
    def root_id(self) -> str:
        return self._root_id

    # region: session

    def init(self) -> None:
        self._session_instance = None
        self._ensure_session()

    def _ensure_session(self) -> Session:
        if self._session_instance is None:
            self._session_instance = self._sessions.open()
        return self._session_instance

    @property
    def workspace_id(self) -> str:
        return self._ensure_session().workspace_id

    # endregion

    # region: error mapping

    @contextmanager
    def _step(self, step: str, node_id: str | None = None) -> Iterator[None]:
        """Surface service and transport failures of one operation as ``RequestFailed``."""
        try:
            yield
        except (RequestFailed, AuthenticationFailed, NotFound):
            raise
        except DriveError as exc:
            raise RequestFailed(
                f"{step} failed: {exc}", step=step, cause=exc, node_id=node_id, driver=self.name
            ) from exc

    def _request(self, path: str, form: FormData) -> Envelope:
        return self._client.request(path, data={"quqi_id": self.workspace_id, **form})

    # endregion

    # region: listing

    def list(self, folder: FileEntry) -> list[FileEntry]:
        with self._step("list", folder.id):
            envelope = self._request("/api/dir/ls", {"node_id": folder.id})
        if not isinstance(envelope.data, dict):
            return []

        entries: list[FileEntry] = []
        for info in envelope.data.get("dir") or []:
            if not info:
                continue
            entries.append(
                FileEntry(
                    id=str(info.get("nid")),
                    name=info.get("name", ""),
                    modified_at=from_epoch(info.get("update_time")),
                    created_at=from_epoch(info.get("add_time")),
                    is_folder=True,
                )
            )
        for info in envelope.data.get("file") or []:
            if not info:
                continue
            name = info.get("name", "")
            if info.get("ext"):
                name = f"{name}.{info['ext']}"
            entries.append(
                FileEntry(
                    id=str(info.get("nid")),
                    name=name,
                    size=int(info.get("size") or 0),
                    modified_at=from_epoch(info.get("update_time")),
                    created_at=from_epoch(info.get("add_time")),
                )
            )
        log.debug("Listed %d entries in folder %s", len(entries), folder.id)
        return entries

    def link(self, file: FileEntry) -> Link:
        with self._step("link", file.id):
            url = self._request("/api/doc/getDoc", {"node_id": file.id}).require("origin_path")
        return Link(url=url, headers={"Origin": ORIGIN, "Cookie": self._ensure_session().cookie})

    # endregion

    # region: mutations

    def make_dir(self, parent: FileEntry, name: str) -> FileEntry:
        now = utcnow()
        with self._step("make_dir", parent.id):
            envelope = self._request("/api/dir/mkDir", {"parent_id": parent.id, "name": name})
            node_id = envelope.require("node_id")
        return FileEntry(id=node_id, name=name, modified_at=now, created_at=now, is_folder=True)

    def move(self, entry: FileEntry, dst_folder: FileEntry) -> FileEntry:
        with self._step("move", entry.id):
            envelope = self._request("/api/dir/mvDir", self._transfer_form(entry, dst_folder))
            node_id = envelope.require("node_id")
            name = envelope.require("node_name")
        return dataclasses.replace(entry, id=node_id, name=name, modified_at=utcnow())

    def rename(self, entry: FileEntry, new_name: str) -> FileEntry:
        with self._step("rename", entry.id):
            envelope = self._request("/api/dir/renameDir", {"node_id": entry.id, "rename": new_name})
            node_id = envelope.require("node_id")
            name = envelope.require("rename")
        updated = envelope.field("updatetime")
        return dataclasses.replace(
            entry,
            id=node_id,
            name=name,
            modified_at=from_epoch(updated) if updated else utcnow(),
        )

    def copy(self, entry: FileEntry, dst_folder: FileEntry) -> FileEntry | None:
        # The copy response does not describe the new node.
        with self._step("copy", entry.id):
            self._request("/api/node/copy", self._transfer_form(entry, dst_folder))
        return None

    def remove(self, entry: FileEntry) -> None:
        # Deleted nodes go to the recycle bin.
        with self._step("remove", entry.id):
            self._request("/api/node/del", {"node_id": entry.id})

    def _transfer_form(self, entry: FileEntry, dst_folder: FileEntry) -> FormData:
        return {
            "node_id": dst_folder.id,
            "source_quqi_id": self.workspace_id,
            "source_node_id": entry.id,
        }

    # endregion

    # region: upload

    def put(self, parent: FileEntry, stream: FileStream, progress: ProgressCallback | None = None) -> FileEntry:
        self._ensure_session()
        return self._uploader.upload(parent.id, stream, progress)

    # endregion

    # region: lifecycle

    def close(self) -> None:
        self._client.close()
        self._session_instance = None

    # endregion
