# regulatix

A small closed-loop control simulator. A signal generator produces a set
point, a PID controller acts on the error between the set point and the
plant output, and an ARX model plays the part of the controlled plant,
with random noise added to its output.

## Installing

    pip install .

For running the tests:

    pip install .[test]
    pytest

## Command line

    regulatix --help

Each run builds a simulation, applies the options given, and then does one
of the following:

- `--steps N` simulates N steps at once and writes the recorded frames as
  CSV.
- `--duration SECONDS` (without `--steps`) simulates as many steps as fit in
  that time at the step interval (`--interval`, at least 30 ms), without
  waiting, and writes the frames.
- `--realtime --duration SECONDS` steps on a timer in real time for that
  long, then writes the frames.
- `--replay FILE.csv` loads previously recorded frames instead of
  simulating, and writes them out again.
- `--show-config` prints the configuration as `key=value` lines and exits.
- `--save FILE` writes the configuration to a binary file; on its own it
  does nothing else.

Frames go to standard output, or to a file with `--export FILE.csv`.
`--columns` picks the exported columns from `pid_i`, `pid_p`, `pid_d`,
`pid_output`, `generator_output`, `error`, `arx_output` and `arx_noise`
(all by default). The first column is always the tick.

`--load FILE` reads a configuration saved earlier; options given on the
command line are applied on top of it.

Settings:

- simulation: `--interval` (ms), `--duration` (s), `--seed` (noise
  generator seed), `--outside-sum` / `--inside-sum` (integral mode)
- PID: `--kp`, `--ti`, `--td`
- generator: `--amplitude`, `--frequency`, `--infill` (square wave duty
  cycle in percent), `--generator-type` (`sine`, `square`, `triangle`,
  `sawtooth`, `single_jump`)
- ARX: `--a`, `--b` (comma separated coefficients), `--delay`, `--noise`,
  `--noise-type` (`normal`, `uniform`, `triangular`, `exponential`,
  `laplace`, `poisson`, `gamma`, `beta`)

Example:

    regulatix --steps 200 --kp 2 --ti 5 --generator-type square --export run.csv
    regulatix --replay run.csv --columns generator_output,arx_output

## Using it as a library

```python
from regulatix.simulation import Simulation

sim = Simulation()
sim.pid.kp = 2.0
sim.generator.amplitude = 1.0

for _ in range(100):
    sim.step()

for frame in sim.frames[:3]:
    print(frame.tick, frame.generator_output, frame.arx_output)
```

`Simulation.connect(event, callback)` subscribes to the events
`add_series`, `update_chart`, `reset_chart`, `simulation_start` and
`simulation_stop`. `start()` steps on a background thread every
`interval` milliseconds (at least 30), `stop()` ends that, and `reset()`
clears the tick, the time, the recorded frames and the model state.

The building blocks can be used on their own:

- `regulatix.pid.PID` — PID controller with `run(error)` and `reset()`.
  With `is_outside_sum` the integral is `(1 / ti) * sum(errors)`;
  otherwise each error is weighted by the `ti` in force when it arrived.
  A `ti` of zero switches the integral off and clears it.
- `regulatix.generator.Generator` and `GeneratorType` — sine, square,
  triangle, sawtooth and single-jump signals via `run(time)`; `frequency`
  acts as the period of the wave.
- `regulatix.arx.ARX` and `NoiseType` — ARX plant with `a`/`b`
  coefficients, `delay`, `noise` and `noise_type`, run with
  `run(value, tick)`. Triangular noise is drawn uniformly; `laplace` and
  `beta` add no noise.
- `regulatix.chart.ChartModel` — keeps named series of points for one
  chart position (`ChartPosition.TOP`, `MIDDLE`, `BOTTOM`) and works out
  the axis ranges `x_range()` and `y_range()`.
- `regulatix.csvio` — `export_frames`, `import_frames` and
  `replay_frames` for CSV files of simulation frames, plus
  `parse_coefficients` / `format_coefficients` for comma-separated
  coefficient lists. Importing needs all nine columns and raises
  `CsvFormatError` otherwise.
- `regulatix.network` — `TCPClient` and `TCPServer` for exchanging text
  messages over TCP; the server greets each client with
  `Hello client <index>`.

Settings round-trip through a binary blob:

```python
data = sim.serialize()
other = Simulation()
other.deserialize(data)
```

The blob holds the interval, duration, PID gains, generator amplitude,
frequency and type, and the ARX noise, noise type, delay and
coefficients. The square wave `infill` is not stored.

## What it does not do

- There is no graphical interface: `ChartModel` only holds the series and
  axis ranges, nothing is drawn.
- The TCP client and server are not wired into the simulation or the
  command line; they only pass text messages between programs that use
  them.
- In exported CSV files the header names `Error` before
  `Generator Output`, while each row holds the generator value first and
  the error second, the order that importing expects.