# timesignal

A transmitter for long-wave radio time signals, meant to run on a Raspberry Pi.
It drives general-purpose clock 0 at the carrier frequency of the chosen
service and, once a second, switches its output on GPIO4 on and off to send
the time code of the current minute. A radio-controlled clock placed near a
wire on that pin can set itself from it.

Supported services:

| Service | Carrier  | Time code                                  |
|---------|----------|--------------------------------------------|
| DCF77   | 77.5 kHz | local time of the upcoming minute          |
| WWVB    | 60 kHz   | UTC, with DST flags for today and tomorrow |
| JJY40   | 40 kHz   | local time                                 |
| JJY60   | 60 kHz   | local time                                 |
| MSF     | 60 kHz   | local time of the upcoming minute          |

## Installation

```
pip install .
```

## Running

The clock registers are reached through `/dev/mem`, so run it as root:

```
sudo time-signal -s DCF77
```

Options:

- `-s <service>`: one of `DCF77`, `WWVB`, `JJY40`, `JJY60`, `MSF`, in any case
- `-v`: verbose; write the pulse length of every second to standard error,
  fifteen per line
- `-c`: carrier wave only; the clock output is switched on and left running,
  with no time code
- `-h`: print the usage text and exit with status 1

Without a known service the usage text is printed and the exit status is 1.
If `/dev/mem` cannot be opened or mapped, the program says it needs to be
root and exits with status 1.

At start-up the program reads the Pi model from `/proc/cpuinfo` (falling back
to the Pi 3 layout), lists the clock sources it considered with the frequency
and error each would give, and reports the one it chose. It then prints the
date and time of each minute as it starts sending it. Stop it with Ctrl-C or
SIGTERM; the clock is stopped before it exits. Where the system allows it, the
process asks for real-time FIFO scheduling.

The pulse timings are only as accurate as the system clock, so keep it
synchronised, for example with NTP. Frequency generation is known not to work
on the Pi 4.

## Using the library

The time-code encoders in `timesignal.services` work on any machine and touch
no hardware:

```python
import time
from timesignal.services import TimeService, prepare_minute, modulation_for_second

t = int(time.time()) // 60 * 60
bits = prepare_minute(TimeService.DCF77, t)
pulses = [modulation_for_second(TimeService.DCF77, bits, s) for s in range(60)]
```

`prepare_minute` returns the 60-bit code for the minute starting at a Unix
time, and `modulation_for_second` the length in milliseconds of the modulated
part of a given second. Both raise `ValueError` for an unknown service.

`timesignal.clock` holds the hardware side:

- `detect_pi_model` and `pi_model_from_cpuinfo` give a `PiModel`.
- `choose_clock(model, frequency)` returns the `ClockSetting` (source, source
  frequency and fractional divider) the hardware would use, or raises
  `ValueError` when no source can produce the frequency.
- `ClockController` maps the registers as a context manager; `start`,
  `stop` and `enable_output` run the clock and route it to GPIO4. Failing to
  reach the registers raises `HardwareError`.

## Tests

```
pip install .[test]
pytest
```