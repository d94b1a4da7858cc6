[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bullscows"
version = "0.1.0"
description = "HTTP game server for two-player Bulls and Cows matches backed by Redis"
requires-python = ">=3.10"
keywords = ["bulls and cows", "game", "redis", "flask", "multiplayer"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Puzzle Games",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask",
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
bullscows = "bullscows.server:main"

[tool.hatch.build.targets.wheel]
packages = ["bullscows"]

[tool.pytest.ini_options]
addopts = "-ra"
