[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pgproto"
version = "0.1.0"
description = "Low-level PostgreSQL wire protocol: frontend messages, binary value formats, authentication and escaping"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "postgresql",
    "postgres",
    "protocol",
    "wire",
    "scram",
    "sasl",
    "binary-format",
]
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
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pgproto"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
strict = true
