[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "catcabinet"
version = "1.0.0"
description = "Controller logic for a smart cat cabinet: bowl and litter event detection, scales, relays, environment helpers and MQTT reporting"
requires-python = ">=3.10"
dependencies = [
    "paho-mqtt",
]
keywords = ["cat", "pet", "litter box", "feeder", "mqtt", "home automation", "load cell"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Home Automation",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["catcabinet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
