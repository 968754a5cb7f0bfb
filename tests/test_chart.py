import pytest

from regulatix.arx import ARX
from regulatix.chart import ChartModel, Range
from regulatix.simulation import ChartPosition, Simulation


@pytest.fixture
def sim():
    return Simulation(arx=ARX(noise=0.0))


def test_first_value_only_creates_series(sim):
    chart = ChartModel(sim, ChartPosition.TOP)
    chart.add_series("x", 5.0, ChartPosition.TOP)
    assert chart.series == {"x": []}
    chart.add_series("x", 7.0, ChartPosition.TOP)
    assert chart.series["x"] == [(sim.current_time, 7.0)]


def test_other_position_ignored(sim):
    chart = ChartModel(sim, ChartPosition.MIDDLE)
    chart.add_series("x", 1.0, ChartPosition.TOP)
    assert chart.series == {}


def test_series_are_trimmed(sim):
    sim.ticks_per_second = 1
    chart = ChartModel(sim, ChartPosition.TOP)
    for value in range(20):
        chart.add_series("x", float(value), ChartPosition.TOP)
    points = chart.series["x"]
    assert len(points) <= sim.ticks_per_second * 4 + 1
    assert points[-1][1] == 19.0
    assert [y for _, y in points] == sorted(y for _, y in points)


def test_y_range_includes_zero(sim):
    chart = ChartModel(sim, ChartPosition.TOP)
    for value in (3.0, 2.0, 5.0):
        chart.add_series("x", value, ChartPosition.TOP)
    assert chart.y_range() == Range(0.0, 5.0)
    for value in (-4.0, -2.0):
        chart.add_series("y", value, ChartPosition.TOP)
    assert chart.y_range() == Range(-2.0, 5.0)


def test_x_range_at_start(sim):
    chart = ChartModel(sim, ChartPosition.TOP)
    assert chart.x_range() == Range(0.0, 10.0)


def test_x_range_follows_time(sim):
    chart = ChartModel(sim, ChartPosition.TOP)
    for _ in range(150):
        sim.step()
    window = chart.x_range()
    assert window.max == pytest.approx(sim.current_time)
    assert window.min > 0
    assert window.min < window.max


def test_update_sets_axes(sim):
    chart = ChartModel(sim, ChartPosition.TOP)
    for _ in range(5):
        sim.step()
    y = chart.y_range()
    assert chart.y_axis == Range(y.min - 1, y.max + 1)
    assert chart.x_axis == chart.x_range()


def test_simulation_feeds_its_position(sim):
    top = ChartModel(sim, ChartPosition.TOP)
    middle = ChartModel(sim, ChartPosition.MIDDLE)
    sim.step()
    sim.step()
    assert set(top.series) == {"I", "D", "P", "PID"}
    assert set(middle.series) == {"Error", "Noise"}
    assert top.series["PID"] == [(sim.current_time, sim.frames[-1].pid_output)]


def test_reset_clears_points(sim):
    chart = ChartModel(sim, ChartPosition.BOTTOM)
    for _ in range(4):
        sim.step()
    sim.reset()
    assert set(chart.series) == {"Generator", "ARX"}
    assert all(points == [] for points in chart.series.values())
    assert chart.y_axis == Range(-1.0, 1.0)