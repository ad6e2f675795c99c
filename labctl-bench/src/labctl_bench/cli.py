"""Command-line interface for labctl.

Usage:
    # Print the identity of every instrument on a bench
    labctl identify --config bench.yaml

    # Log lock-in X/Y readings to CSV
    labctl lockin-log --address 8 --count 100 --interval 0.5 -o voltage_drop_data.csv

    # Capture one scope channel to CSV
    labctl scope-capture --resource USB0::0x0699::0x0374::C012345::INSTR --channel CH1 -o wave.csv

    # Move a stage axis
    labctl stage-move --port /dev/ttyUSB0 --axis A --distance 10.0
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from labctl_core import LabctlError, MeasurementSample
from labctl_holmarc.motion import AXIS_A, AXIS_B, DEFAULT_MM_PER_STEP
from labctl_holmarc.stage import create_instrument as create_stage
from labctl_srs.lockin import DEFAULT_GPIB_ADDRESS, LockinSettings
from labctl_srs.lockin import create_instrument as create_lockin
from labctl_tektronix.scope import create_instrument as create_scope

from labctl_bench.bench import Bench
from labctl_bench.config import load_config
from labctl_bench.csv_export import LOCKIN_XY_COLUMNS, write_samples_csv, write_waveform_csv
from labctl_bench.sequence import run_sequence

logger = logging.getLogger(__name__)

_AXES = {"A": AXIS_A, "B": AXIS_B}


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def cmd_identify(args: argparse.Namespace) -> int:
    """Open a bench and print each instrument's identity."""
    config = load_config(args.config)
    with Bench(config) as bench:
        print(f"Bench: {bench.bench_id}")
        for name, managed in bench.instruments.items():
            identity = managed.identity
            if identity is None:
                print(f"  {name}: (no identity)")
            else:
                print(
                    f"  {name}: {identity.manufacturer} {identity.model} "
                    f"(S/N: {identity.serial}, FW: {identity.firmware})"
                )
    return 0


def cmd_lockin_log(args: argparse.Namespace) -> int:
    """Configure the lock-in, log X/Y readings and save them."""
    settings = LockinSettings(
        frequency_hz=args.frequency,
        amplitude_v=args.amplitude,
        sensitivity=args.sensitivity,
        time_constant=args.time_constant,
        settle_s=args.settle,
    )
    resource = args.resource if args.resource else args.address
    with create_lockin(resource) as lockin:
        lockin.configure(settings)

        def report(index: int, sample: MeasurementSample) -> None:
            x, y = sample.values
            print(
                f"Measurement {index} of {args.count}: "
                f"Time = {sample.elapsed_s:.2f} s, X = {x:.6f} V, Y = {y:.6f} V"
            )

        samples = run_sequence(lockin.measure_xy, args.count, args.interval, on_sample=report)

    write_samples_csv(args.output, LOCKIN_XY_COLUMNS, samples)
    print(f"Saved {len(samples)} samples to {args.output}")
    return 0


def cmd_scope_capture(args: argparse.Namespace) -> int:
    """Acquire one scope channel and save it."""
    with create_scope(args.resource) as scope:
        waveform = scope.record_waveform(
            args.channel, args.duration, start=args.start, stop=args.stop
        )
    write_waveform_csv(args.output, waveform)
    print(f"Saved {len(waveform)} points to {args.output}")
    return 0


def cmd_stage_move(args: argparse.Namespace) -> int:
    """Move one stage axis by a relative distance."""
    with create_stage(args.port, mm_per_step=args.mm_per_step) as stage:
        command = stage.move_axis(_AXES[args.axis], args.distance)
    print(f"Axis {args.axis}: {command.step_count} steps")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="labctl",
        description="labctl instrument control CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # identify command
    identify_parser = subparsers.add_parser("identify", help="Identify every bench instrument")
    identify_parser.add_argument("--config", "-c", required=True, help="Bench YAML file")

    # lockin-log command
    lockin_parser = subparsers.add_parser("lockin-log", help="Log SR830 X/Y readings to CSV")
    lockin_parser.add_argument(
        "--address", type=int, default=DEFAULT_GPIB_ADDRESS,
        help=f"GPIB address on board 0 (default: {DEFAULT_GPIB_ADDRESS})"
    )
    lockin_parser.add_argument(
        "--resource",
        help="VISA resource string (overrides --address)"
    )
    lockin_parser.add_argument(
        "--count", type=int, default=100,
        help="Number of measurements (default: 100)"
    )
    lockin_parser.add_argument(
        "--interval", type=float, default=0.5,
        help="Seconds between measurements (default: 0.5)"
    )
    lockin_parser.add_argument(
        "--frequency", type=float, default=1000.0,
        help="Reference frequency in Hz (default: 1000)"
    )
    lockin_parser.add_argument(
        "--amplitude", type=float, default=1.0,
        help="Sine output amplitude in volts (default: 1.0)"
    )
    lockin_parser.add_argument(
        "--sensitivity", type=int, default=22,
        help="Sensitivity index 0-26 (default: 22)"
    )
    lockin_parser.add_argument(
        "--time-constant", type=int, default=10,
        help="Time constant index 0-19 (default: 10)"
    )
    lockin_parser.add_argument(
        "--settle", type=float, default=2.0,
        help="Seconds to wait after configuring (default: 2.0)"
    )
    lockin_parser.add_argument(
        "--output", "-o", default="voltage_drop_data.csv",
        help="Output CSV path (default: voltage_drop_data.csv)"
    )

    # scope-capture command
    scope_parser = subparsers.add_parser("scope-capture", help="Capture a scope channel to CSV")
    scope_parser.add_argument("--resource", required=True, help="VISA resource string")
    scope_parser.add_argument("--channel", default="CH1", help="Source channel (default: CH1)")
    scope_parser.add_argument(
        "--duration", type=float, default=1.0,
        help="Acquisition dwell in seconds (default: 1.0)"
    )
    scope_parser.add_argument("--start", type=int, default=1, help="First point (default: 1)")
    scope_parser.add_argument("--stop", type=int, default=10000, help="Last point (default: 10000)")
    scope_parser.add_argument(
        "--output", "-o", default="waveform.csv",
        help="Output CSV path (default: waveform.csv)"
    )

    # stage-move command
    stage_parser = subparsers.add_parser("stage-move", help="Move a stage axis")
    stage_parser.add_argument("--port", required=True, help="Serial port (e.g. COM4, /dev/ttyUSB0)")
    stage_parser.add_argument("--axis", choices=sorted(_AXES), required=True, help="Axis to move")
    stage_parser.add_argument(
        "--distance", type=float, required=True,
        help="Relative distance in millimetres"
    )
    stage_parser.add_argument(
        "--mm-per-step", type=float, default=DEFAULT_MM_PER_STEP,
        help=f"Stage resolution (default: {DEFAULT_MM_PER_STEP})"
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.debug)

    handlers = {
        "identify": cmd_identify,
        "lockin-log": cmd_lockin_log,
        "scope-capture": cmd_scope_capture,
        "stage-move": cmd_stage_move,
    }
    try:
        return handlers[args.command](args)
    except (LabctlError, ValueError, FileNotFoundError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
