"""YAML configuration loading for instrument benches.

A bench file names the instruments on one experiment bench, the driver
factory that opens each of them and, optionally, the identity each must
report when it is opened.

Example YAML configuration:
    bench:
      id: "optics-bench-1"
      description: "Lock-in voltage drop setup"

    instruments:
      lockin:
        driver: "labctl_srs.lockin:create_instrument"
        identity:
          manufacturer: "Stanford_Research_Systems"
          model: "SR830"
        kwargs:
          resource: 8
      stage:
        driver: "labctl_holmarc.stage:create_instrument"
        kwargs:
          port: "/dev/ttyUSB0"
          mm_per_step: 0.390625
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from labctl_bench.errors import BenchConfigError


@dataclass(frozen=True)
class ExpectedIdentity:
    """Expected instrument identity for verification.

    The bench compares this against the identity returned by the
    instrument's ``get_identity()`` method right after opening it.

    Attributes:
        manufacturer: Expected manufacturer name (e.g., "KEITHLEY INSTRUMENTS").
        model: Expected model name (e.g., "MODEL 2450").
    """

    manufacturer: str
    model: str


@dataclass(frozen=True)
class InstrumentConfig:
    """Configuration for a single instrument on the bench.

    Attributes:
        name: Unique instrument name within the bench (e.g., "lockin").
        driver: Driver path in "module:function" format
            (e.g., "labctl_srs.lockin:create_instrument").
        identity: Expected identity, or None to skip verification.
        kwargs: Keyword arguments passed to the driver factory.
    """

    name: str
    driver: str
    identity: ExpectedIdentity | None = None
    kwargs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BenchConfig:
    """Configuration for an instrument bench.

    Attributes:
        bench_id: Unique identifier for this bench.
        description: Human-readable description.
        instruments: Instrument configurations, in opening order.
    """

    bench_id: str
    description: str
    instruments: tuple[InstrumentConfig, ...]

    def get(self, name: str) -> InstrumentConfig:
        """Return the configuration of instrument *name*.

        Raises:
            KeyError: If no instrument has that name.
        """
        for inst in self.instruments:
            if inst.name == name:
                return inst
        raise KeyError(name)


def _parse_identity(name: str, identity_data: Any) -> ExpectedIdentity | None:
    if identity_data is None:
        return None
    if not isinstance(identity_data, dict):
        raise BenchConfigError(f"Instrument '{name}' identity must be a mapping")
    if not identity_data.get("manufacturer"):
        raise BenchConfigError(f"Instrument '{name}' missing required field: identity.manufacturer")
    if not identity_data.get("model"):
        raise BenchConfigError(f"Instrument '{name}' missing required field: identity.model")
    return ExpectedIdentity(
        manufacturer=str(identity_data["manufacturer"]),
        model=str(identity_data["model"]),
    )


def parse_config(data: Any) -> BenchConfig:
    """Build a bench configuration from already-parsed YAML data.

    Args:
        data: The top-level mapping.

    Returns:
        Parsed bench configuration.

    Raises:
        BenchConfigError: If the data is invalid or missing required fields.
    """
    if not isinstance(data, dict):
        raise BenchConfigError("Config must be a YAML mapping")

    bench_section = data.get("bench") or {}
    if not isinstance(bench_section, dict):
        raise BenchConfigError("bench must be a mapping")
    bench_id = bench_section.get("id")
    if not bench_id:
        raise BenchConfigError("Missing required field: bench.id")
    description = bench_section.get("description", "")

    instruments_data = data.get("instruments") or {}
    if not isinstance(instruments_data, dict):
        raise BenchConfigError("instruments must be a mapping")

    instruments: list[InstrumentConfig] = []
    for name, inst_data in instruments_data.items():
        if not isinstance(inst_data, dict):
            raise BenchConfigError(f"Instrument '{name}' must be a mapping")

        driver = inst_data.get("driver")
        if not driver:
            raise BenchConfigError(f"Instrument '{name}' missing required field: driver")

        kwargs = inst_data.get("kwargs") or {}
        if not isinstance(kwargs, dict):
            raise BenchConfigError(f"Instrument '{name}' kwargs must be a mapping")

        instruments.append(
            InstrumentConfig(
                name=str(name),
                driver=driver,
                identity=_parse_identity(name, inst_data.get("identity")),
                kwargs=kwargs,
            )
        )

    return BenchConfig(
        bench_id=str(bench_id),
        description=description,
        instruments=tuple(instruments),
    )


def load_config(path: str | Path) -> BenchConfig:
    """Load bench configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Parsed bench configuration.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        BenchConfigError: If the config is invalid or missing required fields.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise BenchConfigError(f"Invalid YAML in {path}: {exc}") from exc

    return parse_config(data)
