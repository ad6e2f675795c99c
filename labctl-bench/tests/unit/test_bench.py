"""Unit tests for Bench lifetime management using instrument emulators."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from labctl_bench.bench import Bench, InstrumentState
from labctl_bench.config import BenchConfig, ExpectedIdentity, InstrumentConfig
from labctl_bench.errors import BenchError
from labctl_holmarc import HolmarcStage, HolmarcStageEmulator
from labctl_keithley import Keithley2450, make_2450_emulator
from labctl_scpi import ScpiConnection, TransportOpenError
from labctl_srs import SR830, SR830Emulator


class FactoryRegistry:
    """Driver factories backed by emulators, with every transport recorded."""

    def __init__(self) -> None:
        self.transports: dict[str, Any] = {}

    def loader(self, path: str) -> Callable[..., Any]:
        return {
            "test:lockin": self._lockin,
            "test:smu": self._smu,
            "test:stage": self._stage,
            "test:broken": self._broken,
            "test:interrupted": self._interrupted,
        }[path]

    def _lockin(self) -> SR830:
        emu = SR830Emulator()
        self.transports["lockin"] = emu
        return SR830(ScpiConnection(emu))

    def _smu(self, serial: str = "04400001") -> Keithley2450:
        emu = make_2450_emulator(serial=serial)
        self.transports["smu"] = emu
        return Keithley2450(ScpiConnection(emu, check_errors=True))

    def _stage(self) -> HolmarcStage:
        emu = HolmarcStageEmulator()
        self.transports["stage"] = emu
        return HolmarcStage(ScpiConnection(emu))

    def _broken(self) -> Any:
        raise TransportOpenError("Failed to open VISA resource 'GPIB0::9::INSTR'")

    def _interrupted(self) -> Any:
        raise KeyboardInterrupt


def _config(*instruments: InstrumentConfig) -> BenchConfig:
    return BenchConfig(bench_id="test-bench", description="", instruments=instruments)


LOCKIN = InstrumentConfig(
    name="lockin",
    driver="test:lockin",
    identity=ExpectedIdentity("Stanford_Research_Systems", "SR830"),
)
SMU = InstrumentConfig(
    name="smu",
    driver="test:smu",
    identity=ExpectedIdentity("KEITHLEY INSTRUMENTS", "MODEL 2450"),
    kwargs={"serial": "04412345"},
)
STAGE = InstrumentConfig(name="stage", driver="test:stage")


class TestOpen:
    def test_opens_and_verifies(self) -> None:
        registry = FactoryRegistry()
        with Bench(_config(LOCKIN, SMU, STAGE), loader=registry.loader) as bench:
            assert isinstance(bench.get_instrument("lockin"), SR830)
            assert isinstance(bench.get_instrument("smu"), Keithley2450)
            assert isinstance(bench.get_instrument("stage"), HolmarcStage)
            assert bench.instruments["smu"].identity.serial == "04412345"  # type: ignore[union-attr]

    def test_stage_has_no_identity(self) -> None:
        registry = FactoryRegistry()
        with Bench(_config(STAGE), loader=registry.loader) as bench:
            assert bench.instruments["stage"].identity is None
            assert bench.instruments["stage"].state == InstrumentState.READY

    def test_identity_optional_for_identifiable_driver(self) -> None:
        registry = FactoryRegistry()
        lockin = InstrumentConfig(name="lockin", driver="test:lockin")
        with Bench(_config(lockin), loader=registry.loader) as bench:
            assert bench.instruments["lockin"].identity.model == "SR830"  # type: ignore[union-attr]


class TestCloseOnEveryPath:
    def test_closes_all_on_normal_exit(self) -> None:
        registry = FactoryRegistry()
        with Bench(_config(LOCKIN, SMU, STAGE), loader=registry.loader):
            pass
        assert all(t.closed for t in registry.transports.values())

    def test_closes_all_when_body_raises(self) -> None:
        registry = FactoryRegistry()
        with pytest.raises(RuntimeError):
            with Bench(_config(LOCKIN, SMU), loader=registry.loader):
                raise RuntimeError("experiment failed")
        assert registry.transports["lockin"].closed
        assert registry.transports["smu"].closed

    def test_later_open_failure_closes_earlier(self) -> None:
        registry = FactoryRegistry()
        broken = InstrumentConfig(name="scope", driver="test:broken")
        bench = Bench(_config(LOCKIN, SMU, broken, STAGE), loader=registry.loader)
        with pytest.raises(BenchError, match="scope"):
            bench.open()
        assert registry.transports["lockin"].closed
        assert registry.transports["smu"].closed
        assert "stage" not in registry.transports
        assert bench.instruments["scope"].state == InstrumentState.ERROR
        assert bench.instruments["lockin"].state == InstrumentState.CLOSED

    def test_interrupt_during_open_closes_earlier(self) -> None:
        registry = FactoryRegistry()
        slow = InstrumentConfig(name="scope", driver="test:interrupted")
        bench = Bench(_config(LOCKIN, slow, STAGE), loader=registry.loader)
        with pytest.raises(KeyboardInterrupt):
            bench.open()
        assert registry.transports["lockin"].closed
        assert "stage" not in registry.transports
        assert bench.instruments["scope"].state == InstrumentState.ERROR
        assert bench.instruments["lockin"].state == InstrumentState.CLOSED

    def test_identity_mismatch_closes_mismatched_instrument(self) -> None:
        registry = FactoryRegistry()
        wrong = InstrumentConfig(
            name="smu", driver="test:smu", identity=ExpectedIdentity("KEITHLEY INSTRUMENTS", "MODEL 2400")
        )
        with pytest.raises(BenchError, match="Model mismatch"):
            with Bench(_config(LOCKIN, wrong), loader=registry.loader):
                pass
        assert registry.transports["smu"].closed
        assert registry.transports["lockin"].closed

    def test_identity_configured_for_driver_without_one(self) -> None:
        registry = FactoryRegistry()
        stage = InstrumentConfig(name="stage", driver="test:stage", identity=ExpectedIdentity("Holmarc", "XY"))
        with pytest.raises(BenchError, match="cannot report"):
            Bench(_config(stage), loader=registry.loader).open()
        assert registry.transports["stage"].closed

    def test_close_is_idempotent(self) -> None:
        registry = FactoryRegistry()
        bench = Bench(_config(LOCKIN), loader=registry.loader)
        bench.open()
        bench.close()
        bench.close()
        assert bench.instruments["lockin"].state == InstrumentState.CLOSED


class TestGetInstrument:
    def test_unknown_name(self) -> None:
        registry = FactoryRegistry()
        with Bench(_config(LOCKIN), loader=registry.loader) as bench:
            with pytest.raises(BenchError, match="No instrument"):
                bench.get_instrument("scope")

    def test_not_ready_before_open(self) -> None:
        bench = Bench(_config(LOCKIN), loader=FactoryRegistry().loader)
        with pytest.raises(BenchError, match="not ready"):
            bench.get_instrument("lockin")

    def test_not_ready_after_close(self) -> None:
        registry = FactoryRegistry()
        with Bench(_config(LOCKIN), loader=registry.loader) as bench:
            pass
        with pytest.raises(BenchError, match="closed"):
            bench.get_instrument("lockin")
