"""Chunked upload to Quqi: init, listParts, tempKey, sequential part upload, finish."""

from __future__ import annotations

import dataclasses
import hashlib
import logging
import shutil
import tempfile
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, BinaryIO

from remote_drive._errors import (
    DigestComputationFailed,
    DriveError,
    PartTransferFailed,
    RequestFailed,
)
from remote_drive._models import FileEntry
from remote_drive.drivers._quqi_api import UPLOAD_HOST

if TYPE_CHECKING:
    from collections.abc import Iterator

    from remote_drive._models import FileStream
    from remote_drive._types import ProgressCallback
    from remote_drive.drivers._quqi_api import QuqiClient

log = logging.getLogger(__name__)

PART_SIZE = 2 * 1024 * 1024
CLIENT_ID = "quqipc_F8X2qOlSfF"
TREE_ID = "1"

STORAGE_ENDPOINT_URL = "https://cos.ap-shanghai.myqcloud.com"
STORAGE_REGION = "ap-shanghai"

_READ_CHUNK = 1024 * 1024
_DRIVER = "quqi"


# region: part planning


@dataclasses.dataclass(frozen=True)
class Part:
    """One slice of a multipart upload.

    :param number: 1-based part number.
    :param offset: Byte offset of the part within the file.
    :param length: Number of bytes in the part.
    """

    number: int
    offset: int
    length: int


def part_count(size: int, part_size: int = PART_SIZE) -> int:
    """Number of parts needed for ``size`` bytes (``0`` for an empty file)."""
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")
    if part_size <= 0:
        raise ValueError(f"part_size must be positive, got {part_size}")
    return (size + part_size - 1) // part_size


def plan_parts(size: int, part_size: int = PART_SIZE) -> list[Part]:
    """Split ``size`` bytes into consecutive parts of ``part_size``; the last one takes the remainder."""
    count = part_count(size, part_size)
    parts = []
    for number in range(1, count + 1):
        offset = (number - 1) * part_size
        length = part_size if number < count else size - offset
        parts.append(Part(number=number, offset=offset, length=length))
    return parts


# endregion

# region: digests


@dataclasses.dataclass(frozen=True)
class Digests:
    md5: str
    sha256: str


def compute_digests(fileobj: BinaryIO, expected_size: int) -> Digests:
    """Hash ``fileobj`` from its start with MD5 and SHA-256 in one pass.

    The file position is left at the end of the content.

    :raises DigestComputationFailed: If reading fails or yields other than ``expected_size`` bytes.
    """
    md5 = hashlib.md5()  # noqa: S324
    sha256 = hashlib.sha256()
    total = 0
    try:
        fileobj.seek(0)
        while chunk := fileobj.read(_READ_CHUNK):
            md5.update(chunk)
            sha256.update(chunk)
            total += len(chunk)
    except OSError as exc:
        raise DigestComputationFailed(f"Could not read upload source: {exc}", driver=_DRIVER) from exc
    if total != expected_size:
        raise DigestComputationFailed(
            f"Upload source yielded {total} bytes, expected {expected_size}",
            driver=_DRIVER,
        )
    return Digests(md5=md5.hexdigest(), sha256=sha256.hexdigest())


@contextmanager
def materialize(stream: FileStream) -> Iterator[BinaryIO]:
    """Yield a seekable file object holding the stream's full content.

    Seekable sources are used in place; anything else is spooled to a
    temporary file that is closed on exit.
    """
    content = stream.content
    seekable = getattr(content, "seekable", None)
    if seekable is not None and seekable():
        yield content
        return
    try:
        spool = tempfile.TemporaryFile()  # noqa: SIM115
    except OSError as exc:
        raise DigestComputationFailed(f"Could not create spool file: {exc}", driver=_DRIVER) from exc
    with spool:
        try:
            shutil.copyfileobj(content, spool)
        except OSError as exc:
            raise DigestComputationFailed(f"Could not buffer upload source: {exc}", driver=_DRIVER) from exc
        yield spool


# endregion


@dataclasses.dataclass(frozen=True)
class TemporaryCredentials:
    """Short-lived object-storage keys scoped to one upload task."""

    access_key_id: str
    access_key_secret: str
    session_token: str

    def __repr__(self) -> str:
        return f"TemporaryCredentials(access_key_id={self.access_key_id!r})"


@dataclasses.dataclass
class UploadTask:
    """State of one upload call. Filled in step by step and discarded at the end."""

    source: BinaryIO
    size: int
    name: str
    parent_id: str
    digests: Digests
    part_size: int = PART_SIZE
    token: str = ""
    task_id: str = ""
    bucket: str = ""
    key: str = ""
    upload_id: str = ""
    credentials: TemporaryCredentials | None = None

    @property
    def parts(self) -> list[Part]:
        return plan_parts(self.size, self.part_size)


class UploadOrchestrator:
    """Drives the multipart upload protocol for one driver instance.

    Every step runs strictly after the previous one; parts are sent one at a
    time in ascending order. Nothing is retried and an aborted upload is left
    on the service as an incomplete task.

    :param client: Authenticated request client (with an open session).
    :param storage_endpoint_url: Object storage endpoint parts are sent to.
    :param storage_region: Object storage region.
    :param storage_options: Extra keyword arguments for ``botocore.config.Config``.
    :param part_size: Size of every part but the last.
    """

    def __init__(
        self,
        client: QuqiClient,
        *,
        storage_endpoint_url: str = STORAGE_ENDPOINT_URL,
        storage_region: str = STORAGE_REGION,
        storage_options: dict[str, Any] | None = None,
        part_size: int = PART_SIZE,
    ) -> None:
        self._client = client
        self._storage_endpoint_url = storage_endpoint_url
        self._storage_region = storage_region
        self._storage_options = storage_options or {}
        self._part_size = part_size

    @contextmanager
    def _step(self, step: str, task: UploadTask) -> Iterator[None]:
        """Wrap errors raised while talking to the service as ``RequestFailed``."""
        try:
            yield
        except DriveError as exc:
            log.warning("Upload of %r aborted during %s: %s", task.name, step, exc)
            raise RequestFailed(f"Upload step '{step}' failed: {exc}", step=step, cause=exc, driver=_DRIVER) from exc

    def upload(self, parent_id: str, stream: FileStream, progress: ProgressCallback | None = None) -> FileEntry:
        """Upload ``stream`` into folder ``parent_id`` and return the created file.

        :raises ValueError: If the stream declares a negative size.
        :raises DigestComputationFailed: If the source cannot be read in full.
        :raises RequestFailed: If init, listParts, tempKey or finish fails.
        :raises PartTransferFailed: If sending a part to object storage fails.
        """
        if stream.size < 0:
            raise ValueError(f"stream size must be non-negative, got {stream.size}")
        log.info("Uploading %r (%d bytes) into folder %s", stream.name, stream.size, parent_id)

        with materialize(stream) as source:
            task = UploadTask(
                source=source,
                size=stream.size,
                name=stream.name,
                parent_id=parent_id,
                digests=compute_digests(source, stream.size),
                part_size=self._part_size,
            )
            self._init(task)
            self._list_parts(task)
            credentials = self._fetch_credentials(task)
            self._transfer_parts(task, credentials, progress)
            node_id, node_name = self._finish(task)

        log.info("Uploaded %r as node %s", node_name, node_id)
        return FileEntry(
            id=node_id,
            name=node_name,
            size=stream.size,
            modified_at=stream.modified_at,
            created_at=stream.created_at,
        )

    # region: protocol steps

    def _workspace_id(self) -> str:
        session = self._client.session
        return session.workspace_id if session is not None else ""

    def _init(self, task: UploadTask) -> None:
        with self._step("init", task):
            envelope = self._client.request(
                "/api/upload/v1/file/init",
                data={
                    "quqi_id": self._workspace_id(),
                    "tree_id": TREE_ID,
                    "parent_id": task.parent_id,
                    "size": str(task.size),
                    "file_name": task.name,
                    "md5": task.digests.md5,
                    "sha": task.digests.sha256,
                    "is_slice": "true",
                    "client_id": CLIENT_ID,
                },
            )
            task.token = envelope.require("token")
            task.task_id = envelope.require("task_id")
            task.bucket = envelope.require("bucket")
            task.key = envelope.require("key")
            task.upload_id = envelope.require("upload_id")
        log.debug("Upload task %s created for %r", task.task_id, task.name)

    def _list_parts(self, task: UploadTask) -> None:
        with self._step("listParts", task):
            self._client.request(
                "/upload/v1/listParts",
                host=UPLOAD_HOST,
                data={"token": task.token, "task_id": task.task_id, "client_id": CLIENT_ID},
            )

    def _fetch_credentials(self, task: UploadTask) -> TemporaryCredentials:
        with self._step("tempKey", task):
            envelope = self._client.request(
                "/upload/v1/tempKey",
                host=UPLOAD_HOST,
                method="GET",
                params={"token": task.token, "task_id": task.task_id},
            )
            credentials = TemporaryCredentials(
                access_key_id=envelope.require("credentials", "tmpSecretId"),
                access_key_secret=envelope.require("credentials", "tmpSecretKey"),
                session_token=envelope.require("credentials", "sessionToken"),
            )
        task.credentials = credentials
        return credentials

    def _transfer_parts(
        self, task: UploadTask, credentials: TemporaryCredentials, progress: ProgressCallback | None
    ) -> None:
        parts = task.parts
        if not parts:
            log.debug("Empty upload %r: no parts to transfer", task.name)
            return

        from botocore.exceptions import BotoCoreError, ClientError

        try:
            storage = self._storage_client(credentials)
        except (BotoCoreError, ValueError, TypeError) as exc:
            # Bad endpoint URL or storage options.
            log.warning("Upload of %r aborted: object storage client unavailable: %s", task.name, exc)
            raise PartTransferFailed(
                f"Could not create object storage client: {exc}",
                part_number=parts[0].number,
                cause=exc,
                driver=_DRIVER,
            ) from exc

        task.source.seek(0)
        for part in parts:
            data = task.source.read(part.length)
            if len(data) != part.length:
                log.warning("Upload of %r aborted at part %d: short read", task.name, part.number)
                raise PartTransferFailed(
                    f"Read {len(data)} of {part.length} bytes for part {part.number}",
                    part_number=part.number,
                    driver=_DRIVER,
                )
            log.debug("Sending part %d/%d (%d bytes) of %r", part.number, len(parts), part.length, task.name)
            try:
                storage.upload_part(
                    Bucket=task.bucket,
                    Key=task.key,
                    UploadId=task.upload_id,
                    PartNumber=part.number,
                    Body=data,
                    ContentLength=part.length,
                )
            except (BotoCoreError, ClientError) as exc:
                log.warning("Upload of %r aborted at part %d: %s", task.name, part.number, exc)
                raise PartTransferFailed(
                    f"Part {part.number} failed: {exc}",
                    part_number=part.number,
                    cause=exc,
                    driver=_DRIVER,
                ) from exc
            if progress is not None:
                progress(part.number * 100.0 / len(parts))

    def _finish(self, task: UploadTask) -> tuple[str, str]:
        with self._step("finish", task):
            envelope = self._client.request(
                "/api/upload/v1/file/finish",
                data={"token": task.token, "task_id": task.task_id, "client_id": CLIENT_ID},
            )
            return envelope.require("node_id"), envelope.require("node_name")

    # endregion

    def _storage_client(self, credentials: TemporaryCredentials) -> Any:
        """Build an S3-compatible client for the object storage, scoped to one task's keys."""
        import boto3
        from botocore.config import Config

        opts: dict[str, Any] = dict(self._storage_options)
        opts.setdefault("s3", {"addressing_style": "virtual"})
        # Checksum headers only where the S3 API requires them.
        opts.setdefault("request_checksum_calculation", "when_required")
        opts.setdefault("response_checksum_validation", "when_required")
        return boto3.client(
            "s3",
            endpoint_url=self._storage_endpoint_url,
            region_name=self._storage_region,
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.access_key_secret,
            aws_session_token=credentials.session_token,
            config=Config(**opts),
        )

