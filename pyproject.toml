[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minibroker"
version = "0.1.0"
description = "Building blocks of a small message broker: collections, plain-text reports, stylesheet serving, an HTTP keep-alive endpoint and a versioned configuration data layer."
requires-python = ">=3.10"
dependencies = []
keywords = ["broker", "pubsub", "messaging", "ledger", "optimistic-concurrency"]
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
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["minibroker"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
