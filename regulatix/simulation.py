"""Closed-loop simulation of a generator, a PID controller and an ARX plant."""

from __future__ import annotations

import struct
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional

from .arx import ARX, NoiseType
from .generator import Generator, GeneratorType
from .pid import PID

EVENTS = frozenset(
    {"simulation_start", "simulation_stop", "reset_chart", "update_chart", "add_series"}
)

MIN_TIMER_INTERVAL_MS = 30

# interval, duration, kp, ti, td, amplitude, frequency, generator type,
# noise, noise type, delay: 48 bytes, little endian.
_HEADER = struct.Struct("<if3f2fifiQ")
_SIZE = struct.Struct("<Q")
_FLOAT_SIZE = 4


class ChartPosition(IntEnum):
    """Chart a series is drawn on."""

    TOP = 0
    MIDDLE = 1
    BOTTOM = 2


@dataclass
class SimulationFrame:
    """Values recorded for one simulation tick."""

    tick: int
    generator_output: float = 0.0
    p: float = 0.0
    i: float = 0.0
    d: float = 0.0
    pid_output: float = 0.0
    error: float = 0.0
    arx_output: float = 0.0
    noise: float = 0.0


class Simulation:
    """Runs the control loop and notifies listeners of every step.

    Listeners subscribe with :meth:`connect` to one of the events in
    :data:`EVENTS`. A running simulation steps on a background thread.
    """

    def __init__(
        self,
        pid: Optional[PID] = None,
        generator: Optional[Generator] = None,
        arx: Optional[ARX] = None,
    ) -> None:
        self.pid = pid if pid is not None else PID()
        self.generator = generator if generator is not None else Generator()
        self.arx = arx if arx is not None else ARX()

        self.frames: list[SimulationFrame] = []
        self.duration = 0.0
        self.interval = 100
        self.ticks_per_second = 60.0
        self.is_running = False

        self._tick = 0
        self._current_time = 0.0
        self._outside_sum = True
        # The last plant output feeds the next error; like the loop state
        # it is kept across resets.
        self._arx_output = 0.0

        self._listeners: dict[str, list[Callable[..., Any]]] = {e: [] for e in EVENTS}
        self._lock = threading.RLock()
        self._timer: Optional[tuple[threading.Thread, threading.Event]] = None

    # events

    def connect(self, event: str, callback: Callable[..., Any]) -> None:
        """Call ``callback`` whenever ``event`` is emitted."""
        if event not in self._listeners:
            raise ValueError(f"unknown event: {event!r}")
        self._listeners[event].append(callback)

    def _emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners[event]):
            callback(*args)

    # state

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def current_time(self) -> float:
        return self._current_time

    @property
    def outside_sum(self) -> bool:
        return self._outside_sum

    @outside_sum.setter
    def outside_sum(self, value: bool) -> None:
        self.pid.is_outside_sum = bool(value)
        self._outside_sum = bool(value)

    def increment_tick(self) -> None:
        """Advance the tick counter without simulating."""
        with self._lock:
            self._tick += 1

    # running

    def step(self) -> SimulationFrame:
        """Simulate one tick, record its frame and notify listeners."""
        with self._lock:
            tick = self._tick
            self._current_time += self.interval / 1000.0

            generator = self.generator.run(self._current_time)
            error = generator - self._arx_output
            pid_output = self.pid.run(error)
            self._arx_output = self.arx.run(pid_output, tick)

            frame = SimulationFrame(
                tick=tick,
                generator_output=generator,
                p=self.pid.proportional_part,
                i=self.pid.integral_part,
                d=self.pid.derivative_part,
                pid_output=pid_output,
                error=error,
                arx_output=self._arx_output,
                noise=self.arx.noise_part,
            )
            self.frames.append(frame)

            self._emit("add_series", "I", frame.i, ChartPosition.TOP)
            self._emit("add_series", "D", frame.d, ChartPosition.TOP)
            self._emit("add_series", "P", frame.p, ChartPosition.TOP)
            self._emit("add_series", "PID", pid_output, ChartPosition.TOP)
            self._emit("add_series", "Generator", generator, ChartPosition.BOTTOM)
            self._emit("add_series", "Error", error, ChartPosition.MIDDLE)
            self._emit("add_series", "ARX", frame.arx_output, ChartPosition.BOTTOM)
            self._emit("add_series", "Noise", frame.noise, ChartPosition.MIDDLE)
            self._emit("update_chart")

            self._tick += 1
            return frame

    def start(self) -> None:
        """Step periodically, every ``interval`` ms but at least every 30 ms."""
        self._stop_timer()
        period = max(self.interval, MIN_TIMER_INTERVAL_MS) / 1000.0
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run_timer, args=(period, stop_event), daemon=True
        )
        self._timer = (thread, stop_event)
        self.is_running = True
        thread.start()
        self._emit("simulation_start")

    def _run_timer(self, period: float, stop_event: threading.Event) -> None:
        while not stop_event.wait(period):
            self.step()

    def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None:
            return
        thread, stop_event = timer
        stop_event.set()
        if thread is not threading.current_thread():
            thread.join()

    def stop(self) -> None:
        """Stop periodic stepping."""
        self._stop_timer()
        self.is_running = False
        self._emit("simulation_stop")

    def reset(self) -> None:
        """Stop and clear the time, the recorded frames and the model state."""
        self.stop()
        with self._lock:
            self._tick = 0
            self._current_time = 0.0
            self.is_running = False
            self._emit("reset_chart")
            self.pid.reset()
            self.arx.reset()
            self.frames.clear()

    # persistence

    def serialize(self) -> bytes:
        """Encode the configuration as bytes."""
        a = self.arx.a
        b = self.arx.b
        header = _HEADER.pack(
            int(self.interval),
            self.duration,
            self.pid.kp,
            self.pid.ti,
            self.pid.td,
            self.generator.amplitude,
            self.generator.frequency,
            int(self.generator.type),
            self.arx.noise,
            int(self.arx.noise_type),
            int(self.arx.delay),
        )
        return b"".join(
            (
                header,
                _SIZE.pack(len(a)),
                struct.pack(f"<{len(a)}f", *a),
                _SIZE.pack(len(b)),
                struct.pack(f"<{len(b)}f", *b),
            )
        )

    def deserialize(self, data: bytes) -> None:
        """Apply a configuration produced by :meth:`serialize`."""
        view = memoryview(bytes(data))
        try:
            (
                interval,
                duration,
                kp,
                ti,
                td,
                amplitude,
                frequency,
                generator_type,
                noise,
                noise_type,
                delay,
            ) = _HEADER.unpack_from(view, 0)
        except struct.error as exc:
            raise ValueError("truncated simulation header") from exc

        offset = _HEADER.size
        a, offset = _read_floats(view, offset)
        b, offset = _read_floats(view, offset)

        kind = GeneratorType(generator_type)
        noise_kind = NoiseType(noise_type)

        self.interval = interval
        self.duration = duration
        self.pid.kp = kp
        self.pid.ti = ti
        self.pid.td = td
        self.generator.amplitude = amplitude
        self.generator.frequency = frequency
        self.generator.type = kind
        self.arx.a = a
        self.arx.b = b
        self.arx.noise = noise
        self.arx.noise_type = noise_kind
        self.arx.delay = delay


def _read_floats(view: memoryview, offset: int) -> tuple[list[float], int]:
    if offset + _SIZE.size > len(view):
        raise ValueError("truncated coefficient count")
    (count,) = _SIZE.unpack_from(view, offset)
    offset += _SIZE.size
    end = offset + count * _FLOAT_SIZE
    if end > len(view):
        raise ValueError("truncated coefficient values")
    values = list(struct.unpack_from(f"<{count}f", view, offset))
    return values, end