"""Tests for the Capability enum and CapabilitySet."""

from __future__ import annotations

import pytest

from remote_drive._capabilities import READ_CAPABILITIES, Capability, CapabilitySet
from remote_drive._errors import CapabilityNotSupported


class TestCapability:
    def test_values_match_mount_methods(self) -> None:
        from remote_drive._mount import Mount

        for cap in Capability:
            assert callable(getattr(Mount, cap.value)), cap

    def test_read_capabilities(self) -> None:
        assert READ_CAPABILITIES == {Capability.LIST, Capability.LINK}

    @pytest.mark.parametrize("cap", list(Capability))
    def test_mutating(self, cap: Capability) -> None:
        assert cap.mutating is (cap not in READ_CAPABILITIES)


class TestCapabilitySet:
    def test_is_a_frozenset(self) -> None:
        cs = CapabilitySet({Capability.LIST, Capability.PUT})
        assert len(cs) == 2
        assert cs == {Capability.LIST, Capability.PUT}
        assert hash(cs) == hash(frozenset(cs))

    def test_supports(self) -> None:
        cs = CapabilitySet({Capability.LIST})
        assert cs.supports(Capability.LIST) is True
        assert cs.supports(Capability.PUT) is False

    def test_require_passes(self) -> None:
        CapabilitySet({Capability.LIST}).require(Capability.LIST)

    def test_require_raises(self) -> None:
        with pytest.raises(CapabilityNotSupported) as exc_info:
            CapabilitySet({Capability.LIST}).require(Capability.PUT, driver="quqi")
        assert exc_info.value.capability == "put"
        assert exc_info.value.driver == "quqi"

    def test_require_without_driver(self) -> None:
        with pytest.raises(CapabilityNotSupported) as exc_info:
            CapabilitySet().require(Capability.COPY)
        assert exc_info.value.driver is None

    def test_read_only_subset(self) -> None:
        full = CapabilitySet(Capability)
        restricted = full.read_only()
        assert isinstance(restricted, CapabilitySet)
        assert restricted == READ_CAPABILITIES

    def test_read_only_keeps_missing_reads_missing(self) -> None:
        assert CapabilitySet({Capability.LINK, Capability.PUT}).read_only() == {Capability.LINK}

    def test_repr(self) -> None:
        assert repr(CapabilitySet({Capability.PUT, Capability.LIST})) == "CapabilitySet({LIST, PUT})"

    def test_immutable(self) -> None:
        cs = CapabilitySet({Capability.LIST})
        with pytest.raises(AttributeError):
            cs.x = 1  # type: ignore[attr-defined]
        assert not hasattr(cs, "add")
