"""Clock generator control for the general-purpose clock on GPIO4 of a Raspberry Pi."""

from __future__ import annotations

import enum
import mmap
import os
import re
import sys
import time
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

GPIO_REGISTER_OFFSET = 0x00200000
CLOCK_REGISTER_OFFSET = 0x00101000
REGISTER_BLOCK_SIZE = 4 * 1024

CLK_PASSWD = 0x5A << 24
CLK_CTL_BUSY = 1 << 7
CLK_CTL_KILL = 1 << 5
CLK_CTL_ENAB = 1 << 4
CLK_CMGP0_CTL = 28
CLK_CMGP0_DIV = 29

CLOCK_PIN = 4
MASH = 1  # good approximation, low jitter
_SETTLE = 10e-6


def _ctl_mash(x: int) -> int:
    return x << 9


def _div_divi(x: int) -> int:
    return x << 12


class HardwareError(RuntimeError):
    """The peripheral registers could not be reached."""


class PiModel(enum.Enum):
    """Raspberry Pi families with distinct peripheral layouts."""

    PI_1 = 1
    PI_2 = 2
    PI_3 = 3
    PI_4 = 4

    @property
    def peripheral_base(self) -> int:
        """Physical base address of the peripheral registers."""
        return _PERIPHERAL_BASES[self]


_PERIPHERAL_BASES = {
    PiModel.PI_1: 0x20000000,
    PiModel.PI_2: 0x3F000000,
    PiModel.PI_3: 0x3F000000,
    PiModel.PI_4: 0xFE000000,
}

_PI_TYPES = {
    **dict.fromkeys((0x00, 0x01, 0x02, 0x03, 0x05, 0x06, 0x09, 0x0C), PiModel.PI_1),
    **dict.fromkeys((0x04, 0x12), PiModel.PI_2),
    0x11: PiModel.PI_4,
}

_REVISION = re.compile(r"Revision\s*:\s*([0-9a-fA-F]+)")


def pi_model_from_cpuinfo(text: str) -> PiModel:
    """Determine the Pi model from the contents of /proc/cpuinfo; PI_3 if unknown."""
    for line in text.splitlines():
        if "Revision" not in line:
            continue
        match = _REVISION.match(line)
        if match is None:
            continue
        pi_type = (int(match.group(1), 16) >> 4) & 0xFF
        print(f"Pi type : 0x{pi_type:02x}")
        model = _PI_TYPES.get(pi_type)
        if model is PiModel.PI_4:
            print(
                "Note: Frequency generation is known to not work on Pi4; "
                "Use older Pis for now.",
                file=sys.stderr,
            )
        if model is not None:
            return model
    return PiModel.PI_3


def detect_pi_model(path: str = "/proc/cpuinfo") -> PiModel:
    """Read the Pi model from ``path``; PI_3 when it cannot be read."""
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            text = f.read()
    except OSError:
        return PiModel.PI_3
    return pi_model_from_cpuinfo(text)


@dataclass(frozen=True)
class ClockSetting:
    """A clock source together with its fractional divider."""

    source: int
    source_frequency: float
    divi: int
    divf: int

    @property
    def divisor(self) -> float:
        return self.divi + self.divf / 1024.0

    @property
    def frequency(self) -> float:
        return self.source_frequency / self.divisor


def _clock_sources(model: PiModel) -> Tuple[Tuple[int, float], ...]:
    # Highest frequency first, so the lowest-jitter source wins ties.
    pi4 = model is PiModel.PI_4
    return (
        (7, 0.0 if pi4 else 216.0e6),  # HDMI; can be problematic with a monitor attached
        (1, 54.0e6 if pi4 else 19.2e6),  # crystal oscillator
    )


def _candidates(model: PiModel, requested_freq: float) -> Iterator[Tuple[int, Optional[ClockSetting]]]:
    if requested_freq <= 0:
        raise ValueError(f"requested frequency must be positive: {requested_freq}")
    for source, frequency in _clock_sources(model):
        if frequency == 0:
            yield source, None
            continue
        division = frequency / requested_freq
        if division < 2 or division > 4095:
            yield source, None
            continue
        divi = int(division)
        divf = int((division - divi) * 1024)
        yield source, ClockSetting(source, frequency, divi, divf)


def choose_clock(model, requested_freq) -> ClockSetting:
    """Pick the clock source and divider closest to ``requested_freq`` with MASH 1.

    Raises ValueError when no source can produce the frequency.
    """
    best: Optional[ClockSetting] = None
    smallest_error = 1e9
    for _, setting in _candidates(PiModel(model), requested_freq):
        if setting is None:
            continue
        error = abs(requested_freq - setting.frequency)
        if error >= smallest_error:
            continue
        smallest_error = error
        best = setting
    if best is None:
        raise ValueError(f"no clock source can produce {requested_freq} Hz")
    return best


class ClockController:
    """Drives general-purpose clock 0 and its output on GPIO4 through /dev/mem."""

    def __init__(self, model=None):
        self.model: Optional[PiModel] = None if model is None else PiModel(model)
        self._maps: list = []
        self._gpio: Optional[memoryview] = None
        self._clk: Optional[memoryview] = None
        self._running = False

    def open(self) -> "ClockController":
        """Map the GPIO and clock register blocks; needs root."""
        if self._clk is not None:
            return self
        if self.model is None:
            self.model = detect_pi_model()
        base = self.model.peripheral_base
        try:
            fd = os.open("/dev/mem", os.O_RDWR | getattr(os, "O_SYNC", 0))
        except OSError as exc:
            raise HardwareError(f"can't open /dev/mem: {exc.strerror}; need to be root") from exc
        try:
            gpio_map = self._map(fd, base, GPIO_REGISTER_OFFSET)
            try:
                clk_map = self._map(fd, base, CLOCK_REGISTER_OFFSET)
            except HardwareError:
                gpio_map.close()
                raise
        finally:
            os.close(fd)
        self._maps = [gpio_map, clk_map]
        self._gpio = memoryview(gpio_map).cast("I")
        self._clk = memoryview(clk_map).cast("I")
        return self

    @staticmethod
    def _map(fd: int, base: int, offset: int) -> mmap.mmap:
        try:
            return mmap.mmap(
                fd,
                REGISTER_BLOCK_SIZE,
                flags=mmap.MAP_SHARED,
                prot=mmap.PROT_READ | mmap.PROT_WRITE,
                offset=base + offset,
            )
        except (OSError, ValueError) as exc:
            raise HardwareError(
                f"mmap error mapping from base 0x{base:x}, offset 0x{offset:x}: {exc}"
            ) from exc

    def close(self) -> None:
        """Release the register mappings."""
        for view in (self._gpio, self._clk):
            if view is not None:
                view.release()
        for mapping in self._maps:
            mapping.close()
        self._gpio = self._clk = None
        self._maps = []

    def __enter__(self) -> "ClockController":
        return self.open()

    def __exit__(self, *args) -> None:
        try:
            if self._running and self._clk is not None:
                self.stop()
        finally:
            self.close()

    def _registers(self) -> Tuple[memoryview, memoryview]:
        if self._gpio is None or self._clk is None:
            raise HardwareError("clock controller is not open")
        return self._gpio, self._clk

    def stop(self) -> None:
        """Kill the clock, wait until it is idle and release the output pin."""
        _, clk = self._registers()
        clk[CLK_CMGP0_CTL] = CLK_PASSWD | CLK_CTL_KILL
        while clk[CLK_CMGP0_CTL] & CLK_CTL_BUSY:
            time.sleep(_SETTLE)
        self.enable_output(False)
        self._running = False

    def start(self, requested_freq) -> ClockSetting:
        """Run the clock as close to ``requested_freq`` as possible and return the setting."""
        _, clk = self._registers()
        assert self.model is not None
        print("Clock sources:")
        for source, setting in _candidates(self.model, requested_freq):
            if setting is None:
                print(f"{source} : ")
            else:
                error = abs(requested_freq - setting.frequency)
                print(f"{source} : freq : {setting.frequency:.4f} error : {error:.4f}")
        setting = choose_clock(self.model, requested_freq)

        self.stop()
        clk[CLK_CMGP0_DIV] = CLK_PASSWD | _div_divi(setting.divi) | setting.divf
        time.sleep(_SETTLE)
        clk[CLK_CMGP0_CTL] = CLK_PASSWD | _ctl_mash(MASH) | setting.source
        time.sleep(_SETTLE)
        clk[CLK_CMGP0_CTL] = clk[CLK_CMGP0_CTL] | CLK_PASSWD | CLK_CTL_ENAB
        self._running = True

        print(
            f"\nChoose clock {setting.source} at {setting.source_frequency:g}Hz"
            f" / {setting.divisor:.3f} = {setting.frequency:.3f}\n",
            file=sys.stderr,
        )
        return setting

    def enable_output(self, on) -> None:
        """Route the clock to GPIO4 (alternate function 0) or make the pin an input."""
        gpio, _ = self._registers()
        index = CLOCK_PIN // 10
        shift = (CLOCK_PIN % 10) * 3
        if on:
            gpio[index] = gpio[index] | (4 << shift)
        else:
            gpio[index] = gpio[index] & ~(7 << shift)