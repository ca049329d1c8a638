"""Command line transmitter that keys the GPIO4 clock with a time signal."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import time
from typing import Optional, Sequence, Tuple

from timesignal.clock import ClockController, HardwareError
from timesignal.services import TimeService, modulation_for_second, prepare_minute

_SERVICES = {
    "DCF77": (TimeService.DCF77, 77500),
    "WWVB": (TimeService.WWVB, 60000),
    "JJY40": (TimeService.JJY, 40000),
    "JJY60": (TimeService.JJY, 60000),
    "MSF": (TimeService.MSF, 60000),
}

_BANNER = (
    "time-signal, a JJY/MSF/WWVB/DCF77 radio transmitter\n"
    "This program comes with ABSOLUTELY NO WARRANTY.\n"
    "This is free software, and you are welcome to\n"
    "redistribute it under certain conditions.\n"
)

_SIGNAL_NAMES = {signal.SIGINT: "SIGINT", signal.SIGTERM: "SIGTERM"}


class _UsageError(ValueError):
    """The command line could not be understood."""


class _Terminated(Exception):
    def __init__(self, signum: int):
        super().__init__(signum)
        self.signum = signum


class _Parser(argparse.ArgumentParser):
    def error(self, message):  # type: ignore[override]
        raise _UsageError(message)


def parse_service(name) -> Tuple[TimeService, int]:
    """Return the service and carrier frequency in Hz for a service name.

    The name is matched case-insensitively; raises ValueError if unknown.
    """
    try:
        return _SERVICES[str(name).upper()]
    except KeyError:
        raise ValueError(f"unknown time service: {name!r}") from None


def build_parser() -> argparse.ArgumentParser:
    """Build the option parser; it raises ValueError instead of exiting."""
    parser = _Parser(prog="time-signal", add_help=False)
    parser.add_argument("-s", dest="service", default="", metavar="<service>")
    parser.add_argument("-v", dest="verbose", action="store_true")
    parser.add_argument("-c", dest="carrier_only", action="store_true")
    parser.add_argument("-h", dest="help", action="store_true")
    return parser


def _usage(msg: str, progname: str) -> int:
    sys.stderr.write(
        f"{msg}usage: {progname} [options]\n"
        "Options:\n"
        "\t-s <service>          : Service; one of "
        "'DCF77', 'WWVB', 'JJY40', 'JJY60', 'MSF'\n"
        "\t-v                    : Verbose.\n"
        "\t-c                    : Carrier wave only.\n"
        "\t-h                    : This help.\n"
    )
    return 1


def _sleep_until(deadline: float) -> None:
    while True:
        remaining = deadline - time.time()
        if remaining <= 0:
            return
        time.sleep(remaining)


def _raise_priority() -> None:
    if not hasattr(os, "sched_setscheduler"):
        return
    try:
        os.sched_setscheduler(0, os.SCHED_FIFO, os.sched_param(99))
    except OSError:
        pass


def _on_signal(signum, frame):
    raise _Terminated(signum)


def _transmit(controller: ClockController, service: TimeService, verbose: bool) -> None:
    now = int(time.time())
    minute_start = now - now % 60
    high_first = service is TimeService.JJY
    while True:
        print(time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(minute_start)), flush=True)
        minute_bits = prepare_minute(service, minute_start)
        for second in range(60):
            modulation = modulation_for_second(service, minute_bits, second)
            start = minute_start + second
            _sleep_until(start)
            controller.enable_output(high_first)
            if verbose:
                sys.stderr.write(f"{modulation:03d} ")
                if (second + 1) % 15 == 0:
                    sys.stderr.write("\n")
                sys.stderr.flush()
            _sleep_until(start + modulation / 1000.0)
            controller.enable_output(not high_first)
        minute_start += 60


def _carrier_forever() -> None:
    while True:
        time.sleep(60)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the transmitter; returns the exit status."""
    print(_BANNER)
    parser = build_parser()
    args_list = sys.argv[1:] if argv is None else list(argv)
    try:
        args = parser.parse_args(args_list)
    except _UsageError:
        return _usage("", parser.prog)
    if args.help:
        return _usage("", parser.prog)
    try:
        service, frequency = parse_service(args.service)
    except ValueError:
        return _usage("Please choose a service name with -s option\n", parser.prog)

    previous = {sig: signal.signal(sig, _on_signal) for sig in _SIGNAL_NAMES}
    try:
        with ClockController() as controller:
            try:
                controller.start(frequency)
                if args.carrier_only:
                    controller.enable_output(True)
                _raise_priority()
                if args.carrier_only:
                    _carrier_forever()
                else:
                    _transmit(controller, service, args.verbose)
            except _Terminated as term:
                print(f"\n{_SIGNAL_NAMES.get(term.signum, f'Unknow {term.signum}')}", end="")
                controller.stop()
                print(" signal received - Programme terminé")
                return 0
    except HardwareError as exc:
        print(f"{exc}", file=sys.stderr)
        print("Need to be root", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"{exc}", file=sys.stderr)
        return 1
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return 0


if __name__ == "__main__":
    sys.exit(main())