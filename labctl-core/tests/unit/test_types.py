"""Tests for common types."""

import pytest

from labctl_core import LabctlError
from labctl_core.types import InstrumentIdentity, MeasurementSample


class TestInstrumentIdentity:
    """Tests for InstrumentIdentity."""

    def test_fields(self) -> None:
        identity = InstrumentIdentity(
            manufacturer="Stanford_Research_Systems",
            model="SR830",
            serial="s/n12345",
            firmware="ver1.07",
        )
        assert identity.manufacturer == "Stanford_Research_Systems"
        assert identity.model == "SR830"
        assert identity.serial == "s/n12345"
        assert identity.firmware == "ver1.07"

    def test_frozen(self) -> None:
        identity = InstrumentIdentity("A", "B", "C", "D")
        with pytest.raises(AttributeError):
            identity.model = "X"  # type: ignore[misc]

    def test_equality(self) -> None:
        assert InstrumentIdentity("A", "B", "C", "D") == InstrumentIdentity("A", "B", "C", "D")


class TestMeasurementSample:
    """Tests for MeasurementSample."""

    def test_as_row_prepends_elapsed_time(self) -> None:
        sample = MeasurementSample(elapsed_s=1.5, values=(0.25, -0.125))
        assert sample.as_row() == (1.5, 0.25, -0.125)

    def test_len_counts_values(self) -> None:
        assert len(MeasurementSample(0.0, (1.0, 2.0))) == 2

    def test_frozen(self) -> None:
        sample = MeasurementSample(0.0, (1.0,))
        with pytest.raises(AttributeError):
            sample.elapsed_s = 2.0  # type: ignore[misc]


class TestLabctlError:
    """Tests for the root exception."""

    def test_is_exception(self) -> None:
        with pytest.raises(LabctlError, match="boom"):
            raise LabctlError("boom")
