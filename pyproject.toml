[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bourse"
version = "0.1.0"
description = "Building blocks for a small exchange server: trader accounts, a client registry, a binary packet protocol and an order-matching exchange."
requires-python = ">=3.10"
dependencies = []
keywords = ["exchange", "order book", "trading", "matching engine", "protocol"]
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
    "Topic :: Office/Business :: Financial :: Investment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bourse"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
