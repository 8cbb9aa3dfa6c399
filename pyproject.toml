[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blastwave"
version = "0.1.0"
description = "Blast-wave model core: participant geometry, freeze-out density fields, emission sampling, flow fields, thermal momenta and differential v2{2} cumulants."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "heavy-ion",
    "blast-wave",
    "collective flow",
    "cumulant",
    "Maxwell-Juttner",
    "monte carlo",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["blastwave"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 120
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
