"""Tests for Keithley2450 against the in-process emulator."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest

from labctl_core import MeasurementSample
from labctl_keithley.emulator import (
    Keithley2450Emulator,
    Keithley2450EmulatorConfig,
    make_2450_emulator,
)
from labctl_keithley.smu import Keithley2450, create_instrument
from labctl_scpi import ScpiCommandError, ScpiConnection


def _make_smu(load_ohms: float = 1000.0) -> tuple[Keithley2450, Keithley2450Emulator]:
    emu = make_2450_emulator(load_ohms=load_ohms)
    return Keithley2450(ScpiConnection(emu, check_errors=True)), emu


def _sent(emu: Keithley2450Emulator) -> list[str]:
    """Commands written, without the error queue polls."""
    return [c for c in emu.commands if c != "SYST:ERR?"]


class TestIdentity:
    """Tests for identification."""

    def test_identify(self) -> None:
        smu, _ = _make_smu()
        assert smu.identify().startswith("KEITHLEY INSTRUMENTS,MODEL 2450")

    def test_get_identity(self) -> None:
        smu, _ = _make_smu()
        identity = smu.get_identity()
        assert identity.model == "MODEL 2450"
        assert identity.firmware == "1.7.3b"


class TestSourceCommands:
    """Tests for the exact command strings."""

    def test_voltage_source(self) -> None:
        smu, emu = _make_smu()
        smu.set_voltage_source(1.5)
        assert _sent(emu) == [":SOUR:FUNC VOLT", ":SOUR:VOLT 1.5"]
        assert emu.function == "VOLT"

    def test_current_source(self) -> None:
        smu, emu = _make_smu()
        smu.set_current_source(0.001)
        assert _sent(emu) == [":SOUR:FUNC CURR", ":SOUR:CURR 0.001"]
        assert emu.function == "CURR"

    def test_compliance_limits(self) -> None:
        smu, emu = _make_smu()
        smu.set_current_compliance(0.01)
        smu.set_voltage_compliance(5.0)
        assert _sent(emu) == [":SOUR:VOLT:ILIM 0.01", ":SOUR:CURR:VLIM 5"]

    def test_measurement_ranges(self) -> None:
        smu, emu = _make_smu()
        smu.set_voltage_range(20.0)
        smu.set_current_range(0.1)
        assert _sent(emu) == [":SENS:VOLT:RANGE 20", ":SENS:CURR:RANGE 0.1"]

    def test_every_command_checks_error_queue(self) -> None:
        smu, emu = _make_smu()
        smu.set_voltage_source(1.0)
        assert emu.commands == [":SOUR:FUNC VOLT", "SYST:ERR?", ":SOUR:VOLT 1", "SYST:ERR?"]


class TestOutput:
    """Tests for output control."""

    def test_enable_and_disable(self) -> None:
        smu, emu = _make_smu()
        smu.enable_output()
        assert emu.output_enabled
        assert smu.is_output_enabled()
        smu.enable_output(False)
        assert not emu.output_enabled

    def test_disable_output(self) -> None:
        smu, emu = _make_smu()
        smu.enable_output()
        smu.disable_output()
        assert _sent(emu)[-1] == ":OUTP OFF"


class TestMeasurement:
    """Tests for measurements through the emulated load."""

    def test_output_off_reads_zero(self) -> None:
        smu, _ = _make_smu()
        smu.set_voltage_source(2.0)
        assert smu.measure_voltage() == 0.0
        assert smu.measure_current() == 0.0

    def test_voltage_source_into_load(self) -> None:
        smu, _ = _make_smu(load_ohms=1000.0)
        smu.set_voltage_source(2.0)
        smu.set_current_compliance(0.01)
        smu.enable_output()
        assert smu.measure_voltage() == pytest.approx(2.0)
        assert smu.measure_current() == pytest.approx(0.002)

    def test_current_compliance_clamps(self) -> None:
        smu, _ = _make_smu(load_ohms=100.0)
        smu.set_voltage_source(10.0)
        smu.set_current_compliance(0.01)
        smu.enable_output()
        assert smu.measure_current() == pytest.approx(0.01)
        assert smu.measure_voltage() == pytest.approx(1.0)

    def test_current_source_voltage_compliance(self) -> None:
        smu, _ = _make_smu(load_ohms=1000.0)
        smu.set_current_source(0.01)
        smu.set_voltage_compliance(5.0)
        smu.enable_output()
        assert smu.measure_voltage() == pytest.approx(5.0)

    def test_measure_returns_sample(self) -> None:
        smu, _ = _make_smu(load_ohms=500.0)
        smu.set_voltage_source(1.0)
        smu.set_current_compliance(0.1)
        smu.enable_output()
        sample = smu.measure()
        assert isinstance(sample, MeasurementSample)
        assert sample.elapsed_s == 0.0
        assert sample.values == pytest.approx((1.0, 0.002))


class TestErrors:
    """Tests for instrument-reported errors."""

    def test_out_of_range_level_raises(self) -> None:
        smu, _ = _make_smu()
        with pytest.raises(ScpiCommandError) as exc_info:
            smu.set_voltage_source(500.0)
        assert exc_info.value.errors[0].code == -222

    def test_connection_usable_after_error(self) -> None:
        smu, _ = _make_smu()
        with pytest.raises(ScpiCommandError):
            smu.set_current_compliance(5.0)
        smu.set_current_compliance(0.01)
        assert smu.identify().startswith("KEITHLEY")


class TestEmulatorConfig:
    """Tests for emulator configuration validation."""

    def test_empty_identity_rejected(self) -> None:
        with pytest.raises(ValueError, match="identity"):
            Keithley2450EmulatorConfig(identity="")

    def test_non_positive_load_rejected(self) -> None:
        with pytest.raises(ValueError, match="load_ohms"):
            Keithley2450EmulatorConfig(identity="K", load_ohms=0.0)

    def test_reset_restores_defaults(self) -> None:
        emu = Keithley2450Emulator(Keithley2450EmulatorConfig(identity="K"))
        smu = Keithley2450(ScpiConnection(emu))
        smu.set_current_source(0.001)
        smu.enable_output()
        smu.reset()
        assert emu.function == "VOLT"
        assert not emu.output_enabled


class TestLifecycle:
    """Tests for close and factory."""

    def test_context_manager_closes(self) -> None:
        smu, emu = _make_smu()
        with smu:
            pass
        assert emu.closed

    def test_create_instrument_enables_error_checking(self) -> None:
        mock_pyvisa = MagicMock()
        mock_pyvisa.errors.VisaIOError = OSError
        resource = mock_pyvisa.ResourceManager.return_value.open_resource.return_value
        resource.read.return_value = '0,"No error"'
        with patch.dict(sys.modules, {"pyvisa": mock_pyvisa}):
            smu = create_instrument("USB0::0x05E6::0x2450::1::INSTR")
        smu.enable_output()
        written = [c.args[0] for c in resource.write.call_args_list]
        assert written == [":OUTP ON", "SYST:ERR?"]
