"""Closed-loop control simulator: signal generator, PID controller, ARX plant, CSV and TCP helpers."""

__version__ = "0.1.0"