"""Minute frames and per-second carrier modulation for the DCF77, JJY, MSF and WWVB services."""

from __future__ import annotations

import enum
import time


class TimeService(enum.Enum):
    """A long-wave time signal service."""

    JJY = 0
    DCF77 = 1
    WWVB = 2
    MSF = 3


def _padded5_bcd(n: int) -> int:
    """BCD with a zero bit between the digits, as used by JJY and WWVB."""
    return (((n // 100) % 10) << 10) | (((n // 10) % 10) << 5) | (n % 10)


def _bcd(n: int) -> int:
    return (((n // 100) % 10) << 8) | (((n // 10) % 10) << 4) | (n % 10)


def _parity(bits: int, first: int, last: int) -> int:
    """Parity (0 or 1) of the bits ``first`` to ``last`` inclusive."""
    width = last - first + 1
    return bin((bits >> first) & ((1 << width) - 1)).count("1") & 1


def _is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def _sunday_based_weekday(tm: time.struct_time) -> int:
    """Weekday with Sunday as 0 and Saturday as 6."""
    return (tm.tm_wday + 1) % 7


def _is_dst(tm: time.struct_time) -> bool:
    return tm.tm_isdst > 0


def _jjy_minute(t: int) -> int:
    # Bit-big-endian: the first transmitted bit sits in bit 59.
    tm = time.localtime(t)
    bits = _padded5_bcd(tm.tm_min) << (59 - 8)
    bits |= _padded5_bcd(tm.tm_hour) << (59 - 18)
    bits |= _padded5_bcd(tm.tm_yday) << (59 - 33)
    bits |= _bcd(tm.tm_year % 100) << (59 - 48)
    bits |= _bcd(_sunday_based_weekday(tm)) << (59 - 52)
    bits |= _parity(bits, 59 - 18, 59 - 12) << (59 - 36)  # PA1
    bits |= _parity(bits, 59 - 8, 59 - 1) << (59 - 37)  # PA2
    return bits


def _dcf77_minute(t: int) -> int:
    # The upcoming minute is announced; bits are sent starting at bit 0.
    tm = time.localtime(t + 60)
    dst = _is_dst(tm)
    bits = int(dst) << 17
    bits |= int(not dst) << 18
    bits |= 1 << 20  # start of time information
    bits |= _bcd(tm.tm_min) << 21
    bits |= _bcd(tm.tm_hour) << 29
    bits |= _bcd(tm.tm_mday) << 36
    bits |= _bcd(tm.tm_wday + 1) << 42  # Monday is 1, Sunday is 7
    bits |= _bcd(tm.tm_mon) << 45
    bits |= _bcd(tm.tm_year % 100) << 50
    bits |= _parity(bits, 21, 27) << 28
    bits |= _parity(bits, 29, 34) << 35
    bits |= _parity(bits, 36, 57) << 58
    return bits


def _wwvb_minute(t: int) -> int:
    # Time fields are always UTC; bit-big-endian with the first bit in bit 59.
    tm = time.gmtime(t)
    bits = _padded5_bcd(tm.tm_min) << (59 - 8)
    bits |= _padded5_bcd(tm.tm_hour) << (59 - 18)
    bits |= _padded5_bcd(tm.tm_yday) << (59 - 33)
    bits |= _padded5_bcd(tm.tm_year % 100) << (59 - 53)
    bits |= int(_is_leap_year(tm.tm_year)) << (59 - 55)
    # Daylight saving status comes from local time, today and tomorrow.
    today = time.localtime(t)
    tomorrow = time.localtime(t + 86400)
    bits |= int(_is_dst(tomorrow)) << (59 - 57)
    bits |= int(_is_dst(today)) << (59 - 58)
    return bits


def _msf_minute(t: int) -> int:
    # The upcoming minute is announced; bit-big-endian with the first bit in bit 59.
    tm = time.localtime(t + 60)
    a_bits = _bcd(tm.tm_year % 100) << (59 - 24)
    a_bits |= _bcd(tm.tm_mon) << (59 - 29)
    a_bits |= _bcd(tm.tm_mday) << (59 - 35)
    a_bits |= _bcd(_sunday_based_weekday(tm)) << (59 - 38)
    a_bits |= _bcd(tm.tm_hour) << (59 - 44)
    a_bits |= _bcd(tm.tm_min) << (59 - 51)

    # DUT and the summer time warning are left unset; parities are odd.
    b_bits = int(_parity(a_bits, 59 - 24, 59 - 17) == 0) << (59 - 54)  # year
    b_bits |= int(_parity(a_bits, 59 - 35, 59 - 25) == 0) << (59 - 55)  # day
    b_bits |= int(_parity(a_bits, 59 - 38, 59 - 36) == 0) << (59 - 56)  # weekday
    b_bits |= int(_parity(a_bits, 59 - 51, 59 - 39) == 0) << (59 - 57)  # time
    b_bits |= int(_is_dst(tm)) << (59 - 58)
    return a_bits | b_bits


_ENCODERS = {
    TimeService.JJY: _jjy_minute,
    TimeService.DCF77: _dcf77_minute,
    TimeService.WWVB: _wwvb_minute,
    TimeService.MSF: _msf_minute,
}


def prepare_minute(service, t) -> int:
    """Return the 60-bit time code for the minute starting at Unix time ``t``.

    Raises ValueError for an unknown service.
    """
    return _ENCODERS[TimeService(service)](int(t))


def _bit(bits: int, n: int) -> bool:
    return bool(bits & (1 << n))


def modulation_for_second(service, time_bits, sec) -> int:
    """Return the length in milliseconds of the modulated part of second ``sec``.

    Raises ValueError for an unknown service or a second the service cannot encode.
    """
    service = TimeService(service)
    if sec < 0:
        raise ValueError(f"second must not be negative: {sec}")

    if service is TimeService.JJY:
        if sec == 0 or sec % 10 == 9 or sec > 59:
            return 200
        return 500 if _bit(time_bits, 59 - sec) else 800

    if service is TimeService.DCF77:
        if sec >= 59:
            return 0
        return 200 if _bit(time_bits, sec) else 100

    if service is TimeService.WWVB:
        if sec == 0 or sec % 10 == 9 or sec > 59:
            return 800
        return 500 if _bit(time_bits, 59 - sec) else 200

    if sec == 0:
        return 500
    if sec > 59:
        raise ValueError(f"MSF has no second {sec}")
    bit = int(_bit(time_bits, 59 - sec))
    return 100 + bit * 100 + int(52 < sec < 59) * 100