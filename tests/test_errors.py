"""Tests for the error hierarchy and its context rendering."""

from __future__ import annotations

import pytest

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


class TestDriveError:
    def test_default_attributes(self) -> None:
        e = DriveError("boom")
        assert e.node_id is None
        assert e.driver is None
        assert str(e) == "boom"

    def test_context_in_message(self) -> None:
        e = DriveError("boom", node_id="11", driver="quqi")
        assert str(e) == "boom | node_id='11' | driver='quqi'"

    def test_repr(self) -> None:
        e = DriveError("boom", node_id="11")
        assert repr(e) == "DriveError('boom', node_id='11')"

    def test_empty_message(self) -> None:
        assert str(DriveError(driver="quqi")) == "driver='quqi'"


@pytest.mark.parametrize(
    "cls",
    [
        NotFound,
        WorkspaceNotFound,
        AuthenticationFailed,
        BackendUnavailable,
        ApiError,
        RequestFailed,
        PartTransferFailed,
        DigestComputationFailed,
        CapabilityNotSupported,
    ],
)
def test_all_errors_are_drive_errors(cls: type[DriveError]) -> None:
    assert issubclass(cls, DriveError)


def test_workspace_not_found_is_not_found() -> None:
    assert issubclass(WorkspaceNotFound, NotFound)


class TestApiError:
    def test_code(self) -> None:
        e = ApiError("token expired", code=3, driver="quqi")
        assert e.code == 3
        assert str(e) == "token expired | code=3 | driver='quqi'"


class TestRequestFailed:
    def test_step_and_cause(self) -> None:
        cause = ApiError("nope", code=7)
        e = RequestFailed("init failed", step="init", cause=cause)
        assert e.step == "init"
        assert e.cause is cause
        assert "step='init'" in str(e)

    def test_without_step(self) -> None:
        assert str(RequestFailed("x")) == "x"


class TestPartTransferFailed:
    def test_part_number(self) -> None:
        cause = OSError("reset")
        e = PartTransferFailed("part failed", part_number=2, cause=cause, driver="quqi")
        assert e.part_number == 2
        assert e.cause is cause
        assert str(e) == "part failed | part_number=2 | driver='quqi'"


class TestCapabilityNotSupported:
    def test_capability(self) -> None:
        e = CapabilityNotSupported("no", capability="put", driver="memory")
        assert e.capability == "put"
        assert str(e) == "no | driver='memory' | capability='put'"


def test_catch_all_with_base() -> None:
    with pytest.raises(DriveError):
        raise RequestFailed("finish failed", step="finish")
