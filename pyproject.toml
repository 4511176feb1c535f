[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "faux86"
version = "0.1.0"
description = "An 8086/V20 processor core with host input translation, keyboard mapping and audio sample buffering"
requires-python = ">=3.10"
dependencies = []
keywords = ["8086", "x86", "emulator", "cpu", "v20", "pc-xt", "scancode"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["faux86"]

[tool.pytest.ini_options]
addopts = "-ra"
