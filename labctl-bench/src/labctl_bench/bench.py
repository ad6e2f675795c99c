"""Scoped ownership of every instrument on a bench."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Any, Callable, Protocol, runtime_checkable

from labctl_core import InstrumentIdentity

from labctl_bench.config import BenchConfig, InstrumentConfig
from labctl_bench.errors import BenchError
from labctl_bench.loader import load_driver

logger = logging.getLogger(__name__)


@runtime_checkable
class Identifiable(Protocol):
    """Protocol for instruments that support identity queries."""

    def get_identity(self) -> InstrumentIdentity:
        """Return the instrument identity."""
        ...


class InstrumentState(str, Enum):
    """State of an instrument in the bench lifecycle.

    PENDING -> READY on a successful open, READY -> CLOSED on exit.
    ERROR marks the instrument whose open or verification failed.
    """

    PENDING = "pending"
    READY = "ready"
    ERROR = "error"
    CLOSED = "closed"


@dataclass
class ManagedInstrument:
    """An instrument owned by the bench.

    Attributes:
        config: Instrument configuration.
        state: Current lifecycle state.
        instance: The driver instance, once opened.
        identity: The reported identity, when the driver supports it.
        error: Error message, in the ERROR state.
    """

    config: InstrumentConfig
    state: InstrumentState = InstrumentState.PENDING
    instance: Any = None
    identity: InstrumentIdentity | None = None
    error: str | None = None


class Bench:
    """Opens the configured instruments and closes them on every exit path.

    Instruments are opened in configuration order. If any of them fails to
    open, or reports an identity different from the configured one, every
    instrument opened so far is closed and :class:`BenchError` is raised.

    Args:
        config: Bench configuration.
        loader: Resolves a driver path to a factory. Defaults to
            :func:`load_driver`.

    Example:
        with Bench(load_config("bench.yaml")) as bench:
            lockin = bench.get_instrument("lockin")
            lockin.configure()
    """

    def __init__(
        self,
        config: BenchConfig,
        *,
        loader: Callable[[str], Callable[..., Any]] | None = None,
    ) -> None:
        self._config = config
        self._loader = loader if loader is not None else load_driver
        self._instruments: dict[str, ManagedInstrument] = {
            inst.name: ManagedInstrument(config=inst) for inst in config.instruments
        }

    @property
    def bench_id(self) -> str:
        """Return the bench ID."""
        return self._config.bench_id

    @property
    def instruments(self) -> dict[str, ManagedInstrument]:
        """Managed instruments keyed by name."""
        return dict(self._instruments)

    def open(self) -> None:
        """Open and verify every configured instrument.

        An interrupt such as ``KeyboardInterrupt`` also closes the instruments
        opened so far and is then re-raised unchanged.

        Raises:
            BenchError: If an instrument fails to open or verify. All
                instruments opened before the failure are closed first.
        """
        for name, managed in self._instruments.items():
            try:
                self._open_one(managed)
            except BaseException as exc:
                managed.state = InstrumentState.ERROR
                managed.error = str(exc) or type(exc).__name__
                logger.error("Failed to open instrument %s: %s", name, managed.error)
                self.close()
                if not isinstance(exc, Exception):
                    raise
                raise BenchError(f"Instrument '{name}' failed to open: {exc}") from exc
        logger.info("Bench %s ready (%d instruments)", self.bench_id, len(self._instruments))

    def close(self) -> None:
        """Close every opened instrument.

        A failure closing one instrument is logged and does not prevent the
        others from being closed.
        """
        for name, managed in self._instruments.items():
            if managed.instance is None or managed.state == InstrumentState.CLOSED:
                continue
            try:
                if hasattr(managed.instance, "close"):
                    managed.instance.close()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning("Error closing instrument %s: %s", name, exc)
            managed.state = InstrumentState.CLOSED

    def get_instrument(self, name: str) -> Any:
        """Return the ready driver instance named *name*.

        Raises:
            BenchError: If the name is unknown or the instrument is not ready.
        """
        managed = self._instruments.get(name)
        if managed is None:
            raise BenchError(f"No instrument named '{name}' on bench {self.bench_id}")
        if managed.state != InstrumentState.READY:
            raise BenchError(f"Instrument '{name}' is not ready (state: {managed.state.value})")
        return managed.instance

    def __enter__(self) -> Bench:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _open_one(self, managed: ManagedInstrument) -> None:
        factory = self._loader(managed.config.driver)
        managed.instance = factory(**managed.config.kwargs)

        expected = managed.config.identity
        if isinstance(managed.instance, Identifiable):
            identity = managed.instance.get_identity()
            managed.identity = identity
            if expected is not None:
                if identity.manufacturer != expected.manufacturer:
                    raise BenchError(
                        f"Manufacturer mismatch: expected '{expected.manufacturer}', "
                        f"got '{identity.manufacturer}'"
                    )
                if identity.model != expected.model:
                    raise BenchError(
                        f"Model mismatch: expected '{expected.model}', got '{identity.model}'"
                    )
        elif expected is not None:
            raise BenchError("Identity configured but the driver cannot report one")

        managed.state = InstrumentState.READY
        logger.info(
            "Instrument %s opened: %s %s (S/N: %s)",
            managed.config.name,
            managed.identity.manufacturer if managed.identity else "unknown",
            managed.identity.model if managed.identity else "unknown",
            managed.identity.serial if managed.identity else "unknown",
        )
