"""Unit tests for the labctl command-line interface."""

from __future__ import annotations

import csv
from pathlib import Path
from unittest.mock import patch

import pytest

from labctl_bench import cli
from labctl_holmarc import HolmarcStage, HolmarcStageEmulator
from labctl_keithley import Keithley2450, make_2450_emulator
from labctl_scpi import ScpiConnection, TransportOpenError
from labctl_srs import SR830, SR830Emulator
from labctl_tektronix import TektronixScope, make_dpo2014_emulator


def _read(path: Path) -> list[list[str]]:
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


class TestParser:
    def test_no_command_prints_help(self) -> None:
        assert cli.main([]) == 1

    def test_lockin_defaults(self) -> None:
        args = cli.build_parser().parse_args(["lockin-log"])
        assert args.address == 8
        assert args.count == 100
        assert args.interval == 0.5
        assert args.sensitivity == 22
        assert args.time_constant == 10
        assert args.output == "voltage_drop_data.csv"

    def test_stage_axis_choices(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["stage-move", "--port", "COM4", "--axis", "C", "--distance", "1"])


class TestLockinLog:
    def test_logs_and_saves(self, tmp_path: Path) -> None:
        emu = SR830Emulator()
        emu.set_signal(1.0e-3, -1.0e-3)
        lockin = SR830(ScpiConnection(emu), sleep=lambda _: None)
        output = tmp_path / "out.csv"
        with patch.object(cli, "create_lockin", return_value=lockin) as factory:
            code = cli.main(
                ["lockin-log", "--count", "3", "--interval", "0", "--settle", "0", "-o", str(output)]
            )
        assert code == 0
        factory.assert_called_once_with(8)
        rows = _read(output)
        assert rows[0] == ["Time(s)", "X(V)", "Y(V)"]
        assert len(rows) == 4
        assert emu.closed
        assert emu.commands[0] == "*RST"

    def test_resource_overrides_address(self, tmp_path: Path) -> None:
        lockin = SR830(ScpiConnection(SR830Emulator()), sleep=lambda _: None)
        with patch.object(cli, "create_lockin", return_value=lockin) as factory:
            cli.main(
                [
                    "lockin-log", "--resource", "GPIB1::4::INSTR", "--count", "1",
                    "--settle", "0", "-o", str(tmp_path / "o.csv"),
                ]
            )
        factory.assert_called_once_with("GPIB1::4::INSTR")

    def test_invalid_sensitivity_fails_cleanly(self, tmp_path: Path) -> None:
        with patch.object(cli, "create_lockin") as factory:
            code = cli.main(["lockin-log", "--sensitivity", "40", "-o", str(tmp_path / "o.csv")])
        assert code == 1
        factory.assert_not_called()

    def test_open_failure_returns_error(self, tmp_path: Path) -> None:
        with patch.object(cli, "create_lockin", side_effect=TransportOpenError("no bus")):
            code = cli.main(["lockin-log", "-o", str(tmp_path / "o.csv")])
        assert code == 1


class TestScopeCapture:
    def test_captures_to_csv(self, tmp_path: Path) -> None:
        emu = make_dpo2014_emulator()
        scope = TektronixScope(ScpiConnection(emu), sleep=lambda _: None)
        output = tmp_path / "wave.csv"
        with patch.object(cli, "create_scope", return_value=scope):
            code = cli.main(
                ["scope-capture", "--resource", "USB0::1::2::3::INSTR", "--stop", "100", "-o", str(output)]
            )
        assert code == 0
        rows = _read(output)
        assert rows[0] == ["Time(s)", "Voltage(V)"]
        assert len(rows) == 101
        assert emu.closed


class TestStageMove:
    def test_moves_axis(self, capsys: pytest.CaptureFixture[str]) -> None:
        emu = HolmarcStageEmulator()
        stage = HolmarcStage(ScpiConnection(emu))
        with patch.object(cli, "create_stage", return_value=stage):
            code = cli.main(["stage-move", "--port", "COM4", "--axis", "B", "--distance", "-5"])
        assert code == 0
        assert emu.raw_writes == [bytes([2, 255, 255, 243])]
        assert "-13 steps" in capsys.readouterr().out
        assert emu.closed

    def test_out_of_range_move_fails_without_write(self) -> None:
        emu = HolmarcStageEmulator()
        stage = HolmarcStage(ScpiConnection(emu))
        with patch.object(cli, "create_stage", return_value=stage):
            code = cli.main(["stage-move", "--port", "COM4", "--axis", "A", "--distance", "1e9"])
        assert code == 1
        assert emu.raw_writes == []


class TestIdentify:
    def test_missing_config(self, tmp_path: Path) -> None:
        assert cli.main(["identify", "--config", str(tmp_path / "none.yaml")]) == 1

    def test_prints_identities(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = tmp_path / "bench.yaml"
        config.write_text(
            'bench:\n  id: "desk"\ninstruments:\n'
            '  smu:\n    driver: "labctl_bench_test_factories:make_smu"\n',
            encoding="utf-8",
        )
        def make_smu() -> Keithley2450:
            return Keithley2450(ScpiConnection(make_2450_emulator(serial="04477777")))

        with patch("labctl_bench.bench.load_driver", return_value=make_smu):
            code = cli.main(["identify", "--config", str(config)])
        assert code == 0
        out = capsys.readouterr().out
        assert "Bench: desk" in out
        assert "MODEL 2450" in out
        assert "04477777" in out
