[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cctetris"
version = "0.1.0"
description = "Guideline-style Tetris rules, move generation, opening books and a TBI message codec"
requires-python = ">=3.10"
dependencies = [
    "zstandard",
]
keywords = [
    "tetris",
    "srs",
    "t-spin",
    "move-generation",
    "opening-book",
    "bot",
    "tbi",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Puzzle Games",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cctetris"]

[tool.hatch.build.targets.sdist]
include = [
    "cctetris",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
