[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jwbot"
version = "1.2.0"
description = "Building blocks for a campus timetable chat bot: academic system client, SQLite storage, mirai-api-http client and helpers"
requires-python = ">=3.10"
keywords = ["chat bot", "mirai", "qq", "timetable", "academic affairs", "courses", "gpa"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Natural Language :: Chinese (Simplified)",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Education",
]
dependencies = [
    "requests",
    "websocket-client",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["jwbot"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"
