[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "upgrader"
version = "0.1.0"
description = "Upgrade steps for system packages, shell plugin managers, developer tools, remote hosts and Vagrant boxes."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "upgrade",
    "update",
    "package-manager",
    "system-administration",
    "automation",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Operating System :: Microsoft :: Windows",
    "Operating System :: POSIX :: BSD :: FreeBSD",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["upgrader"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
