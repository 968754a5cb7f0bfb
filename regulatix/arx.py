"""ARX plant model with additive random noise."""

from __future__ import annotations

import math
import random
from enum import IntEnum
from typing import Iterable, Optional

# Tick arithmetic wraps like an unsigned 64-bit counter.
_SIZE_MODULUS = 2**64


class NoiseType(IntEnum):
    """Distribution of the noise added to the model output."""

    NORMAL = 0
    UNIFORM = 1
    TRIANGULAR = 2
    EXPONENTIAL = 3
    LAPLACE = 4
    POISSON = 5
    GAMMA = 6
    BETA = 7


def _resized(values: list[float], size: int) -> list[float]:
    return values[:size] + [0.0] * (size - len(values))


def _poisson(rng: random.Random, mean: float) -> int:
    if mean <= 0:
        raise ValueError("poisson mean must be positive")
    count = 0
    elapsed = rng.expovariate(mean)
    while elapsed <= 1.0:
        count += 1
        elapsed += rng.expovariate(mean)
    return count


class ARX:
    """Autoregressive model with exogenous input and ring-buffer history.

    ``a`` weights past outputs, ``b`` past inputs; ``delay`` is the length
    of the history buffers and the minimum lag before history is used.
    """

    def __init__(
        self,
        a: Optional[Iterable[float]] = None,
        b: Optional[Iterable[float]] = None,
        delay: Optional[int] = None,
        noise: float = 0.01,
        noise_type: NoiseType = NoiseType.NORMAL,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._a = [0.1] if a is None else [float(v) for v in a]
        self._b = [0.1] if b is None else [float(v) for v in b]
        self._delay = 2
        self._u = [0.0] * len(self._a)
        self._y = [0.0] * len(self._b)
        if delay is not None:
            self.delay = delay
        self.noise = noise
        self.noise_type = noise_type
        self.noise_part = 0.0
        self.rng = rng if rng is not None else random.Random()

    @property
    def a(self) -> list[float]:
        return list(self._a)

    @a.setter
    def a(self, values: Iterable[float]) -> None:
        self._a = [float(v) for v in values]
        self._y = _resized(self._y, len(self._a))

    @property
    def b(self) -> list[float]:
        return list(self._b)

    @b.setter
    def b(self, values: Iterable[float]) -> None:
        self._b = [float(v) for v in values]
        self._y = _resized(self._y, len(self._b))

    @property
    def delay(self) -> int:
        return self._delay

    @delay.setter
    def delay(self, value: int) -> None:
        value = int(value)
        if value < 0:
            raise ValueError("delay must not be negative")
        self._delay = value
        self._u = _resized(self._u, value)
        self._y = _resized(self._y, value)

    def run_noise(self) -> None:
        """Draw a new ``noise_part`` from the configured distribution."""
        if self.noise == 0:
            self.noise_part = 0.0
            return

        kind = NoiseType(self.noise_type)
        rng = self.rng
        if kind is NoiseType.NORMAL:
            self.noise_part = rng.gauss(0.0, self.noise)
        elif kind in (NoiseType.UNIFORM, NoiseType.TRIANGULAR):
            self.noise_part = rng.uniform(-self.noise, self.noise)
        elif kind is NoiseType.EXPONENTIAL:
            self.noise_part = rng.expovariate(self.noise)
        elif kind is NoiseType.POISSON:
            self.noise_part = float(_poisson(rng, self.noise))
        elif kind is NoiseType.GAMMA:
            self.noise_part = rng.gammavariate(self.noise, self.noise)
        else:
            self.noise_part = 0.0

    def run(self, value: float, tick: int) -> float:
        """Feed input ``value`` at simulation ``tick`` and return the output."""
        delay = self._delay
        if delay == 0:
            raise ValueError("delay must be positive to run the model")

        if len(self._a) != len(self._b):
            size = max(len(self._a), len(self._b))
            self._a = _resized(self._a, size)
            self._b = _resized(self._b, size)

        result = 0.0
        for lag_index, coefficient in enumerate(self._b):
            lag = (tick - lag_index) % _SIZE_MODULUS
            if lag > delay:
                slot = lag % delay
                if slot < len(self._u):
                    result += coefficient * self._u[slot]

        for lag_index, coefficient in enumerate(self._a):
            lag = (tick - lag_index) % _SIZE_MODULUS
            if lag > delay:
                slot = lag % delay
                if slot < len(self._y):
                    result -= coefficient * self._y[slot]

        if len(self._u) < delay or len(self._y) < delay:
            self._u = _resized(self._u, delay)
            self._y = _resized(self._y, delay)

        slot = tick % delay
        self._u[slot] = value
        self._y[slot] = result

        self.run_noise()
        return result + self.noise_part

    def reset(self) -> None:
        """Zero the input and output history and the last noise sample."""
        self._u = [0.0] * len(self._u)
        self._y = [0.0] * len(self._y)
        self.noise_part = 0.0

    def __repr__(self) -> str:
        return (
            f"ARX(a={self._a!r}, b={self._b!r}, delay={self._delay!r}, "
            f"noise={self.noise!r}, noise_type={NoiseType(self.noise_type).name})"
        )