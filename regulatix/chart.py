"""Chart data model fed by a running simulation."""

from __future__ import annotations

from dataclasses import dataclass

from .simulation import ChartPosition, Simulation

_SECONDS_SHOWN = 4


@dataclass(frozen=True)
class Range:
    """Closed interval of an axis."""

    min: float
    max: float


class ChartModel:
    """Series and axis ranges of one chart position.

    The model listens to the simulation's ``add_series``, ``update_chart``
    and ``reset_chart`` events.
    """

    def __init__(self, simulation: Simulation, position: ChartPosition) -> None:
        self.simulation = simulation
        self.position = ChartPosition(position)
        self.series: dict[str, list[tuple[float, float]]] = {}
        self.x_axis = Range(0.0, 1.0)
        self.y_axis = Range(0.0, 1.0)

        simulation.connect("add_series", self.add_series)
        simulation.connect("update_chart", self.update)
        simulation.connect("reset_chart", self.reset)

    def add_series(self, name: str, y: float, position: ChartPosition) -> None:
        """Append a point to series ``name`` if it belongs to this chart.

        The first value of a new series only creates the series. Older
        points are dropped once a series holds more than four seconds.
        """
        if position != self.position:
            return

        points = self.series.get(name)
        if points is None:
            self.series[name] = []
            return

        max_points = self.simulation.ticks_per_second * _SECONDS_SHOWN
        if len(points) > max_points:
            del points[0]
        points.append((self.simulation.current_time, y))

    def reset(self) -> None:
        """Clear all points, keeping the series."""
        for points in self.series.values():
            points.clear()
        self._set_ranges()
        self.y_axis = Range(-1.0, 1.0)

    def x_range(self) -> Range:
        """Visible time window ending at the current simulation time."""
        offset = self.simulation.interval / 1000.0 * 100
        now = self.simulation.current_time
        return Range(max(now - offset, 0.0), max(now, offset))

    def y_range(self) -> Range:
        """Extent of all values, always including zero."""
        values = [y for points in self.series.values() for _, y in points]
        return Range(min(values, default=0.0, key=float) if values and min(values) < 0 else 0.0,
                     max(values) if values and max(values) > 0 else 0.0)

    def _set_ranges(self) -> None:
        x = self.x_range()
        y = self.y_range()
        self.x_axis = x
        self.y_axis = Range(y.min - 1, y.max + 1)

    def update(self) -> None:
        """Recompute the axis ranges."""
        self._set_ranges()