"""Command line front end: configure, run, save, load and export simulations."""

from __future__ import annotations

import argparse
import random
import sys
import time
from dataclasses import fields
from typing import Optional, Sequence, TextIO

from .arx import NoiseType
from .csvio import (
    CsvFormatError,
    ExportChecked,
    export_frames,
    format_coefficients,
    parse_coefficients,
    replay_frames,
)
from .generator import GeneratorType
from .simulation import MIN_TIMER_INTERVAL_MS, Simulation

COLUMNS = tuple(f.name for f in fields(ExportChecked))


def _fmt(value: float) -> str:
    return f"{float(value):.6g}"


def _columns(text: str) -> ExportChecked:
    wanted = {item.strip() for item in text.split(",") if item.strip()}
    unknown = wanted.difference(COLUMNS)
    if unknown:
        raise argparse.ArgumentTypeError(
            f"unknown column(s): {', '.join(sorted(unknown))}; "
            f"choose from {', '.join(COLUMNS)}"
        )
    return ExportChecked(**{name: name in wanted for name in COLUMNS})


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regulatix",
        description="Simulate a closed loop of a generator, a PID controller and an ARX plant.",
    )
    files = parser.add_argument_group("files")
    files.add_argument("--load", metavar="FILE", help="read a saved configuration")
    files.add_argument("--save", metavar="FILE", help="write the configuration")
    files.add_argument("--replay", metavar="CSV", help="load recorded frames instead of simulating")
    files.add_argument("--export", metavar="CSV", help="write frames here instead of stdout")
    files.add_argument(
        "--columns",
        type=_columns,
        default=None,
        help=f"comma separated columns to export ({', '.join(COLUMNS)})",
    )

    run = parser.add_argument_group("simulation")
    run.add_argument("--interval", type=int, help="step interval in milliseconds")
    run.add_argument("--duration", type=float, help="run time in seconds, 0 for unlimited")
    run.add_argument("--steps", type=int, help="number of steps to simulate")
    run.add_argument(
        "--realtime", action="store_true", help="step on a timer for --duration seconds"
    )
    run.add_argument("--seed", type=int, help="seed of the noise generator")
    mode = run.add_mutually_exclusive_group()
    mode.add_argument(
        "--outside-sum", dest="outside_sum", action="store_true", default=None,
        help="integral computed as (1/Ti) * sum of errors",
    )
    mode.add_argument(
        "--inside-sum", dest="outside_sum", action="store_false",
        help="integral accumulated with the Ti in force at each step",
    )
    run.add_argument("--show-config", action="store_true", help="print the configuration and exit")

    pid = parser.add_argument_group("pid")
    pid.add_argument("--kp", type=float)
    pid.add_argument("--ti", type=float)
    pid.add_argument("--td", type=float)

    gen = parser.add_argument_group("generator")
    gen.add_argument("--amplitude", type=float)
    gen.add_argument("--frequency", type=float)
    gen.add_argument("--infill", type=float, help="square wave duty cycle in percent")
    gen.add_argument(
        "--generator-type", choices=[t.name.lower() for t in GeneratorType]
    )

    arx = parser.add_argument_group("arx")
    arx.add_argument("--a", metavar="LIST", help="comma separated A coefficients")
    arx.add_argument("--b", metavar="LIST", help="comma separated B coefficients")
    arx.add_argument("--delay", type=int)
    arx.add_argument("--noise", type=float)
    arx.add_argument("--noise-type", choices=[t.name.lower() for t in NoiseType])
    return parser


def _apply(simulation: Simulation, args: argparse.Namespace) -> None:
    if args.interval is not None:
        simulation.interval = args.interval
    if args.duration is not None:
        simulation.duration = args.duration
    if args.outside_sum is not None:
        simulation.outside_sum = args.outside_sum

    pid = simulation.pid
    if args.kp is not None:
        pid.kp = args.kp
    if args.ti is not None:
        pid.ti = args.ti
    if args.td is not None:
        pid.td = args.td

    generator = simulation.generator
    if args.amplitude is not None:
        generator.amplitude = args.amplitude
    if args.frequency is not None:
        generator.frequency = args.frequency
    if args.infill is not None:
        generator.infill = args.infill
    if args.generator_type is not None:
        generator.type = GeneratorType[args.generator_type.upper()]

    arx = simulation.arx
    if args.a is not None:
        arx.a = parse_coefficients(args.a)
    if args.b is not None:
        arx.b = parse_coefficients(args.b)
    if args.delay is not None:
        arx.delay = args.delay
    if args.noise is not None:
        arx.noise = args.noise
    if args.noise_type is not None:
        arx.noise_type = NoiseType[args.noise_type.upper()]
    if args.seed is not None:
        arx.rng = random.Random(args.seed)


def _describe(simulation: Simulation) -> list[str]:
    pid, generator, arx = simulation.pid, simulation.generator, simulation.arx
    return [
        f"interval={simulation.interval}",
        f"duration={_fmt(simulation.duration)}",
        f"kp={_fmt(pid.kp)}",
        f"ti={_fmt(pid.ti)}",
        f"td={_fmt(pid.td)}",
        f"amplitude={_fmt(generator.amplitude)}",
        f"frequency={_fmt(generator.frequency)}",
        f"infill={_fmt(generator.infill)}",
        f"generator_type={GeneratorType(generator.type).name.lower()}",
        f"noise={_fmt(arx.noise)}",
        f"noise_type={NoiseType(arx.noise_type).name.lower()}",
        f"delay={arx.delay}",
        f"a={format_coefficients(arx.a)}",
        f"b={format_coefficients(arx.b)}",
        f"outside_sum={str(simulation.outside_sum).lower()}",
    ]


def _write_frames(simulation: Simulation, checked: ExportChecked, path: Optional[str]) -> None:
    if path is None:
        export_frames(simulation.frames, checked, sys.stdout)
        return
    with open(path, "w", encoding="utf-8", newline="") as stream:
        export_frames(simulation.frames, checked, stream)


def _run_realtime(simulation: Simulation) -> None:
    simulation.start()
    try:
        time.sleep(simulation.duration)
    except KeyboardInterrupt:
        pass
    finally:
        simulation.stop()


def _report(stream: TextIO, message: str) -> int:
    stream.write(f"regulatix: {message}\n")
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command; returns the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.steps is not None and args.steps < 0:
        parser.error("--steps must not be negative")
    if args.realtime and (args.steps is not None or args.replay is not None):
        parser.error("--realtime cannot be combined with --steps or --replay")

    simulation = Simulation()

    if args.load is not None:
        try:
            with open(args.load, "rb") as stream:
                simulation.deserialize(stream.read())
        except (OSError, ValueError) as exc:
            return _report(sys.stderr, f"cannot load {args.load}: {exc}")

    try:
        _apply(simulation, args)
    except ValueError as exc:
        parser.error(str(exc))

    if args.save is not None:
        try:
            with open(args.save, "wb") as stream:
                stream.write(simulation.serialize())
        except OSError as exc:
            return _report(sys.stderr, f"cannot save {args.save}: {exc}")

    if args.show_config:
        sys.stdout.write("\n".join(_describe(simulation)) + "\n")
        return 0

    checked = args.columns if args.columns is not None else ExportChecked()

    if args.replay is not None:
        try:
            with open(args.replay, encoding="utf-8") as stream:
                replay_frames(simulation, stream)
        except OSError as exc:
            return _report(sys.stderr, f"cannot read {args.replay}: {exc}")
        except CsvFormatError as exc:
            return _report(sys.stderr, f"{args.replay}: {exc}")
    elif args.realtime:
        if simulation.duration <= 0:
            parser.error("--realtime needs a positive --duration")
        _run_realtime(simulation)
    elif args.steps is not None:
        for _ in range(args.steps):
            simulation.step()
    elif simulation.duration > 0:
        period = max(simulation.interval, MIN_TIMER_INTERVAL_MS)
        for _ in range(int(simulation.duration * 1000 // period)):
            simulation.step()
    elif args.save is not None:
        return 0
    else:
        parser.error("nothing to do: give --steps, --duration, --replay, --save or --show-config")

    try:
        _write_frames(simulation, checked, args.export)
    except OSError as exc:
        return _report(sys.stderr, f"cannot export {args.export}: {exc}")
    return 0


if __name__ == "__main__":
    sys.exit(main())