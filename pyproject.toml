[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vxtools"
version = "0.1.0"
description = "Small helpers: an SQL statement builder, a DB-API wrapper, an SMTP sender, a ticker, TCP test harnesses, a file watcher and dynamic page header and template formatting."
requires-python = ">=3.10"
keywords = ["sql", "query-builder", "database", "smtp", "ticker", "tcp", "testing", "watcher", "template"]
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
    "Topic :: Database",
    "Topic :: Communications :: Email",
    "Typing :: Typed",
]
dependencies = [
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["vxtools"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
