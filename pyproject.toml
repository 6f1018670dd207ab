[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hailstorm"
version = "0.3.0"
description = "Building blocks for a distributed load testing framework: metrics, controller state and agent messaging"
requires-python = ">=3.10"
dependencies = []
keywords = ["loadtesting", "framework", "load", "performance", "traffic"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Software Development :: Testing :: Traffic Generation",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["hailstorm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
