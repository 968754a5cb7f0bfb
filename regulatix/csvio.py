"""CSV export and import of recorded simulation frames, and coefficient lists."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, TextIO

from .simulation import ChartPosition, Simulation, SimulationFrame

SEPARATOR = ","
IMPORT_COLUMNS = 9


class CsvFormatError(ValueError):
    """Raised when a simulation CSV file cannot be read."""


@dataclass
class ExportChecked:
    """Columns selected for export."""

    pid_i: bool = True
    pid_p: bool = True
    pid_d: bool = True
    pid_output: bool = True
    generator_output: bool = True
    error: bool = True
    arx_output: bool = True
    arx_noise: bool = True


def _number(value: float) -> str:
    return f"{float(value):.6g}"


def _to_float(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError:
        return 0.0


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


def _header(checked: ExportChecked) -> str:
    columns = [
        (checked.pid_i, "PID I"),
        (checked.pid_p, "PID P"),
        (checked.pid_d, "PID D"),
        (checked.pid_output, "PID Output"),
        (checked.error, "Error"),
        (checked.generator_output, "Generator Output"),
        (checked.arx_output, "ARX Output"),
        (checked.arx_noise, "ARX Noise"),
    ]
    return SEPARATOR.join(["Time", *(name for wanted, name in columns if wanted)])


def _row(frame: SimulationFrame, checked: ExportChecked) -> str:
    columns = [
        (checked.pid_i, frame.i),
        (checked.pid_p, frame.p),
        (checked.pid_d, frame.d),
        (checked.pid_output, frame.pid_output),
        (checked.generator_output, frame.generator_output),
        (checked.error, frame.error),
        (checked.arx_output, frame.arx_output),
        (checked.arx_noise, frame.noise),
    ]
    values = (_number(value) for wanted, value in columns if wanted)
    return SEPARATOR.join([str(frame.tick), *values])


def export_frames(
    frames: Iterable[SimulationFrame], checked: ExportChecked, stream: TextIO
) -> None:
    """Write the selected columns of ``frames`` to ``stream`` as CSV."""
    stream.write(_header(checked) + "\n")
    for frame in frames:
        stream.write(_row(frame, checked) + "\n")


def _read_header(lines: Iterator[str]) -> None:
    header = next(lines, "")
    parts = header.split(SEPARATOR)
    if len(parts) != IMPORT_COLUMNS:
        raise CsvFormatError(
            f"invalid header: expected {IMPORT_COLUMNS} columns, got {len(parts)}"
        )


def _parse_rows(lines: Iterator[str]) -> Iterator[SimulationFrame]:
    for number, line in enumerate(lines, start=2):
        if not line.strip():
            continue
        parts = line.split(SEPARATOR)
        if len(parts) < IMPORT_COLUMNS:
            raise CsvFormatError(
                f"line {number}: expected {IMPORT_COLUMNS} columns, got {len(parts)}"
            )
        yield SimulationFrame(
            tick=_to_int(parts[0]),
            i=_to_float(parts[1]),
            p=_to_float(parts[2]),
            d=_to_float(parts[3]),
            pid_output=_to_float(parts[4]),
            generator_output=_to_float(parts[5]),
            error=_to_float(parts[6]),
            arx_output=_to_float(parts[7]),
            noise=_to_float(parts[8]),
        )


def import_frames(stream: TextIO) -> list[SimulationFrame]:
    """Read frames from a CSV file holding all nine columns.

    Unparsable numbers read as zero; a header without nine columns or a
    short row raises :class:`CsvFormatError`.
    """
    lines = iter(stream)
    _read_header(lines)
    return list(_parse_rows(lines))


def replay_frames(simulation: Simulation, stream: TextIO) -> list[SimulationFrame]:
    """Reset ``simulation`` and load the frames of a CSV file into it.

    Every frame is announced to the chart listeners and advances the tick.
    The header is checked before the simulation is touched.
    """
    lines = iter(stream)
    _read_header(lines)
    simulation.reset()

    loaded = []
    for frame in _parse_rows(lines):
        simulation._emit("add_series", "I", frame.i, ChartPosition.TOP)
        simulation._emit("add_series", "P", frame.p, ChartPosition.TOP)
        simulation._emit("add_series", "D", frame.d, ChartPosition.TOP)
        simulation._emit("add_series", "PID Output", frame.pid_output, ChartPosition.TOP)
        simulation._emit(
            "add_series", "Generator Output", frame.generator_output, ChartPosition.MIDDLE
        )
        simulation._emit("add_series", "Error", frame.error, ChartPosition.MIDDLE)
        simulation._emit("add_series", "ARX Output", frame.arx_output, ChartPosition.BOTTOM)
        simulation._emit("add_series", "Noise", frame.noise, ChartPosition.MIDDLE)

        simulation.increment_tick()
        simulation.frames.append(frame)
        loaded.append(frame)
    return loaded


def parse_coefficients(text: str) -> list[float]:
    """Parse a comma separated list; empty items are skipped, bad ones read as 0."""
    return [_to_float(item) for item in text.split(SEPARATOR) if item]


def format_coefficients(values: Iterable[float]) -> str:
    """Join coefficients with commas using six significant digits."""
    return SEPARATOR.join(_number(value) for value in values)