[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "admiral"
version = "0.1.0"
description = "Building blocks for multi-cluster controllers: IPv4 address pools, federators, progress reporters, levelled logging and in-memory API fakes for tests."
requires-python = ">=3.10"
dependencies = [
    "sortedcontainers",
]
keywords = [
    "ipam",
    "ip-pool",
    "federation",
    "reporter",
    "logging",
    "fake-client",
    "testing",
    "multi-cluster",
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
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Software Development :: Testing :: Mocking",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["admiral"]

[tool.hatch.build.targets.sdist]
include = [
    "admiral",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
