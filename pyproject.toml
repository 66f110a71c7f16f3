[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "horizonx"
version = "0.1.0"
description = "Linux host metrics server that samples CPU, GPU, memory, disk, network and uptime and serves them over HTTP and WebSocket"
requires-python = ">=3.10"
keywords = ["monitoring", "metrics", "linux", "sysfs", "procfs", "websocket", "aiohttp"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "aiohttp",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
horizonx-server = "horizonx.server:main"

[tool.hatch.build.targets.wheel]
packages = ["horizonx"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
