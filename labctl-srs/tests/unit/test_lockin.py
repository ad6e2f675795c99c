"""Tests for the SR830 driver against the in-process emulator."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest

from labctl_scpi import ScpiConnection, ScpiParseError, TransportTimeoutError
from labctl_srs.emulator import SR830Emulator
from labctl_srs.lockin import SR830, LockinSettings, create_instrument, gpib_resource


def _make_lockin() -> tuple[SR830, SR830Emulator, list[float]]:
    emu = SR830Emulator()
    sleeps: list[float] = []
    return SR830(ScpiConnection(emu), sleep=sleeps.append), emu, sleeps


class TestGpibResource:
    """Tests for gpib_resource."""

    def test_default_address(self) -> None:
        assert gpib_resource() == "GPIB0::8::INSTR"

    def test_board_and_address(self) -> None:
        assert gpib_resource(12, board=1) == "GPIB1::12::INSTR"

    @pytest.mark.parametrize("address", [-1, 31])
    def test_out_of_range_address(self, address: int) -> None:
        with pytest.raises(ValueError, match="GPIB address"):
            gpib_resource(address)


class TestLockinSettings:
    """Tests for LockinSettings validation."""

    def test_defaults(self) -> None:
        settings = LockinSettings()
        assert settings.frequency_hz == 1000.0
        assert settings.amplitude_v == 1.0
        assert settings.sensitivity == 22
        assert settings.time_constant == 10

    @pytest.mark.parametrize("index", [-1, 27])
    def test_sensitivity_range(self, index: int) -> None:
        with pytest.raises(ValueError, match="sensitivity"):
            LockinSettings(sensitivity=index)

    @pytest.mark.parametrize("index", [-1, 20])
    def test_time_constant_range(self, index: int) -> None:
        with pytest.raises(ValueError, match="time_constant"):
            LockinSettings(time_constant=index)

    def test_amplitude_range(self) -> None:
        with pytest.raises(ValueError, match="amplitude"):
            LockinSettings(amplitude_v=10.0)

    def test_negative_settle(self) -> None:
        with pytest.raises(ValueError, match="settle_s"):
            LockinSettings(settle_s=-1.0)


class TestConfigure:
    """Tests for the configuration sequence."""

    def test_default_sequence(self) -> None:
        lockin, emu, sleeps = _make_lockin()
        lockin.configure()
        assert emu.commands == [
            "*RST",
            "FREQ 1000",
            "SLVL 1",
            "SENS 22",
            "OFLT 10",
            "FMOD 1",
            "ISRC 0",
            "IGND 0",
            "ICPL 0",
            "DDEF 1,0,0",
            "DDEF 2,1,0",
        ]
        assert sleeps == [2.0]
        assert emu.rejected == []

    def test_custom_settings_reach_instrument(self) -> None:
        lockin, emu, sleeps = _make_lockin()
        lockin.configure(
            LockinSettings(frequency_hz=137.5, amplitude_v=0.5, sensitivity=18, time_constant=8, settle_s=0.1)
        )
        assert emu.frequency_hz == 137.5
        assert emu.amplitude_v == 0.5
        assert emu.sensitivity == 18
        assert emu.time_constant == 8
        assert sleeps == [0.1]

    def test_set_sensitivity_rejects_before_write(self) -> None:
        lockin, emu, _ = _make_lockin()
        with pytest.raises(ValueError):
            lockin.set_sensitivity(27)
        assert emu.commands == []

    def test_set_time_constant_rejects_before_write(self) -> None:
        lockin, emu, _ = _make_lockin()
        with pytest.raises(ValueError):
            lockin.set_time_constant(20)
        assert emu.commands == []

    def test_set_time_constant(self) -> None:
        lockin, emu, _ = _make_lockin()
        lockin.set_time_constant(19)
        assert emu.commands == ["OFLT 19"]
        assert emu.time_constant == 19


class TestMeasure:
    """Tests for snapshot reads."""

    def test_measure_xy(self) -> None:
        lockin, emu, _ = _make_lockin()
        emu.set_signal(1.0e-3, -2.0e-3)
        sample = lockin.measure_xy()
        assert emu.commands[-1] == "SNAP? 1,2"
        assert sample.values == pytest.approx((1.0e-3, -2.0e-3))
        assert sample.elapsed_s == 0.0

    def test_measure_polar(self) -> None:
        lockin, emu, _ = _make_lockin()
        emu.set_signal(0.0, 2.0e-3)
        r, theta = lockin.measure_polar().values
        assert emu.commands[-1] == "SNAP? 3,4"
        assert r == pytest.approx(2.0e-3)
        assert theta == pytest.approx(90.0)

    def test_garbled_response_raises_parse_error(self) -> None:
        lockin, emu, _ = _make_lockin()
        emu.garble_next_snapshot()
        with pytest.raises(ScpiParseError):
            lockin.measure_xy()
        # the connection stays usable
        emu.set_signal(1.0, 0.0)
        assert lockin.measure_xy().values == pytest.approx((1.0, 0.0))

    def test_timeout_propagates(self) -> None:
        transport = MagicMock()
        transport.read.side_effect = TransportTimeoutError("Timed out")
        lockin = SR830(ScpiConnection(transport))
        with pytest.raises(TransportTimeoutError):
            lockin.measure_xy()

    def test_wrong_value_count_raises(self) -> None:
        transport = MagicMock()
        transport.read.return_value = "1.0,2.0,3.0"
        lockin = SR830(ScpiConnection(transport))
        with pytest.raises(ScpiParseError, match="expected 2"):
            lockin.measure_polar()


class TestLifecycle:
    """Tests for identification, close and factory."""

    def test_identify(self) -> None:
        lockin, _, _ = _make_lockin()
        assert lockin.get_identity().model == "SR830"

    def test_context_manager_closes(self) -> None:
        lockin, emu, _ = _make_lockin()
        with lockin:
            pass
        assert emu.closed

    def test_create_instrument_from_address(self) -> None:
        mock_pyvisa = MagicMock()
        mock_pyvisa.errors.VisaIOError = OSError
        with patch.dict(sys.modules, {"pyvisa": mock_pyvisa}):
            create_instrument(8)
        rm = mock_pyvisa.ResourceManager.return_value
        assert rm.open_resource.call_args.args[0] == "GPIB0::8::INSTR"
