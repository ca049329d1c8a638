[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "timesignal"
version = "0.1.0"
description = "Low-frequency time signal transmitter (DCF77, WWVB, JJY, MSF) for Raspberry Pi GPIO clock output"
requires-python = ">=3.10"
dependencies = []
keywords = ["dcf77", "wwvb", "jjy", "msf", "time-signal", "raspberry-pi", "radio-clock"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
    "Topic :: System :: Networking :: Time Synchronization",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
time-signal = "timesignal.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["timesignal"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
