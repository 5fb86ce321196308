[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "incremental_dag"
version = "0.11.0"
description = "Incremental computation over dependency graphs of arbitrary values"
requires-python = ">=3.10"
dependencies = []
keywords = ["dag", "graph", "incremental", "computation", "cache", "dependency"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["incremental_dag"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
