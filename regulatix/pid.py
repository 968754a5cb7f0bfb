"""Discrete PID controller with a selectable integral summation mode."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class PID:
    """PID controller producing proportional, integral and derivative parts.

    With ``is_outside_sum`` set, the integral is ``(1 / ti) * sum(errors)``,
    so a change of ``ti`` rescales the whole history. Otherwise every error
    is weighted by the ``ti`` in force when it arrived.
    """

    kp: float = 1.0
    ti: float = 1.0
    td: float = 1.0
    is_outside_sum: bool = True

    integral_part: float = field(default=0.0, init=False)
    derivative_part: float = field(default=0.0, init=False)
    proportional_part: float = field(default=0.0, init=False)

    _sum: float = field(default=0.0, init=False, repr=False)
    _previous: float = field(default=0.0, init=False, repr=False)
    _errors: list[float] = field(default_factory=list, init=False, repr=False)

    def run_integral(self, error: float) -> None:
        """Update the integral part; a zero ``ti`` clears the integral state."""
        if self.ti == 0:
            self._errors.clear()
            self.integral_part = 0.0
            self._sum = 0.0
            return

        self._errors.append(error)
        coefficient = 1.0 / self.ti
        self._sum += error * coefficient

        if self.is_outside_sum:
            self.integral_part = coefficient * sum(self._errors)
        else:
            self.integral_part = self._sum

    def run_derivative(self, error: float) -> None:
        """Update the derivative part from the change since the last error."""
        derivative = error - self._previous
        logger.debug("derivative: %s", derivative)
        self._previous = error
        self.derivative_part = derivative * self.td

    def run_proportional(self, error: float) -> None:
        """Update the proportional part."""
        self.proportional_part = error * self.kp

    def run(self, error: float) -> float:
        """Feed one error sample and return the controller output."""
        self.run_integral(error)
        self.run_derivative(error)
        self.run_proportional(error)
        return self.integral_part + self.derivative_part + self.proportional_part

    def reset(self) -> None:
        """Clear the controller state, keeping the gains."""
        self._errors.clear()
        self.integral_part = 0.0
        self.derivative_part = 0.0
        self.proportional_part = 0.0
        self._previous = 0.0
        self._sum = 0.0