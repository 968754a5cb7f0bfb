"""Set-point signal generator."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum


class GeneratorType(IntEnum):
    """Waveform produced by a :class:`Generator`."""

    SINE = 0
    SQUARE = 1
    TRIANGLE = 2
    SAWTOOTH = 3
    SINGLE_JUMP = 4


@dataclass
class Generator:
    """Waveform generator; ``frequency`` acts as the period of the wave.

    ``infill`` is the duty cycle of the square wave in percent.
    """

    type: GeneratorType = GeneratorType.SINE
    frequency: float = 100.0
    amplitude: float = 1.0
    infill: float = 50.0

    def run(self, time: float) -> float:
        """Return the signal value at ``time``."""
        kind = GeneratorType(self.type)

        if kind is GeneratorType.SINGLE_JUMP:
            return self.amplitude * (1.0 if time < 1 else 0.0)

        if kind is GeneratorType.SQUARE:
            period = self.frequency * 2
            if period == 0:
                return 0.0
            on_time = period * self.infill / 100
            phase = math.fmod(time, period)
            return self.amplitude * (1.0 if phase < on_time else 0.0)

        if self.frequency == 0:
            return math.nan

        if kind is GeneratorType.SINE:
            return self.amplitude * math.sin(2 * math.pi * time / self.frequency)
        if kind is GeneratorType.TRIANGLE:
            return self.amplitude * math.asin(
                math.sin(2 * math.pi * time / self.frequency)
            )
        return self.amplitude * math.atan(math.tan(math.pi * time / self.frequency))