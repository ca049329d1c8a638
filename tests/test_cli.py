import pytest

from timesignal.cli import build_parser, main, parse_service
from timesignal.services import TimeService


@pytest.mark.parametrize(
    "name, expected",
    [
        ("DCF77", (TimeService.DCF77, 77500)),
        ("dcf77", (TimeService.DCF77, 77500)),
        ("WWVB", (TimeService.WWVB, 60000)),
        ("JJY40", (TimeService.JJY, 40000)),
        ("jjy60", (TimeService.JJY, 60000)),
        ("Msf", (TimeService.MSF, 60000)),
    ],
)
def test_parse_service_known_names(name, expected):
    assert parse_service(name) == expected


@pytest.mark.parametrize("name", ["", "JJY", "DCF", "GPS", "wwv"])
def test_parse_service_unknown_raises(name):
    with pytest.raises(ValueError):
        parse_service(name)


def test_parser_reads_all_options():
    args = build_parser().parse_args(["-v", "-c", "-s", "MSF"])
    assert args.verbose is True
    assert args.carrier_only is True
    assert args.service == "MSF"
    assert args.help is False


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.service == ""
    assert args.verbose is False
    assert args.carrier_only is False


def test_parser_unknown_option_raises_value_error():
    with pytest.raises(ValueError):
        build_parser().parse_args(["-x"])


def test_parser_missing_service_argument_raises_value_error():
    with pytest.raises(ValueError):
        build_parser().parse_args(["-s"])


def test_main_without_service_prints_usage(capsys):
    assert main([]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Please choose a service name with -s option\n")
    assert "usage: time-signal [options]" in err


def test_main_with_unknown_service_prints_usage(capsys):
    assert main(["-s", "nowhere"]) == 1
    assert "Please choose a service name" in capsys.readouterr().err


def test_main_help_returns_one(capsys):
    assert main(["-h"]) == 1
    captured = capsys.readouterr()
    assert "'DCF77', 'WWVB', 'JJY40', 'JJY60', 'MSF'" in captured.err
    assert "radio transmitter" in captured.out


def test_main_bad_option_returns_one(capsys):
    assert main(["-q"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("usage: time-signal")